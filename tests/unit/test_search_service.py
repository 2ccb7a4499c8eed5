"""Unit tests for NovelSearchService and pagination."""

from __future__ import annotations

import pytest

from novelshelf.interfaces.catalog_provider import SearchHit
from novelshelf.models.cache import SearchTarget
from novelshelf.services.cache_store import TTLCacheStore
from novelshelf.services.search_service import PAGE_SIZE, NovelSearchService, Page, paginate
from novelshelf.services.user_stores import SearchHistoryStore
from novelshelf.utils.errors import NovelNotFoundError
from tests.conftest import FakeCatalog


class TestPaginate:
    def test_first_page(self) -> None:
        page = paginate(list(range(45)), 1)
        assert page.items == list(range(PAGE_SIZE))
        assert page.total == 45
        assert page.total_pages == 3
        assert page.has_more is True

    def test_last_page(self) -> None:
        page = paginate(list(range(45)), 3)
        assert page.items == list(range(40, 45))
        assert page.has_more is False

    def test_page_below_one_clamped(self) -> None:
        assert paginate([1, 2], 0).page == 1

    def test_past_the_end_is_empty(self) -> None:
        assert paginate([1, 2], 5).items == []

    def test_empty(self) -> None:
        page: Page[int] = Page()
        assert page.total_pages == 1
        assert page.has_more is False


class TestNovelSearchService:
    @pytest.fixture()
    def history(self, cache: TTLCacheStore) -> SearchHistoryStore:
        return SearchHistoryStore(cache)

    @pytest.fixture()
    def service(self, catalog: FakeCatalog, history: SearchHistoryStore) -> NovelSearchService:
        return NovelSearchService(catalog, history=history)

    @pytest.mark.asyncio
    async def test_list_novels_paged(self, service: NovelSearchService) -> None:
        page = await service.list_novels(page=3)
        assert page.total == 46
        assert len(page.items) == 6
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_empty_keyword_lists_everything(
        self, service: NovelSearchService, history: SearchHistoryStore
    ) -> None:
        page = await service.search("   ")
        assert page.total == 46
        assert history.get() == []

    @pytest.mark.asyncio
    async def test_title_search_recorded_in_history(
        self, service: NovelSearchService, history: SearchHistoryStore
    ) -> None:
        page = await service.search(" 斗破 ")

        assert [hit.id for hit in page.items] == [100]
        entries = history.get()
        assert len(entries) == 1
        assert entries[0].keyword == "斗破"
        assert entries[0].target is SearchTarget.TITLE
        assert entries[0].result_count == 1

    @pytest.mark.asyncio
    async def test_content_search_counts_occurrences(self, service: NovelSearchService) -> None:
        page = await service.search("萧炎", target="content")
        assert page.items == [SearchHit(id=100, title="斗破苍穹", count=3)]

    @pytest.mark.asyncio
    async def test_search_without_history(self, catalog: FakeCatalog) -> None:
        service = NovelSearchService(catalog, page_size=5)
        page = await service.search("小说", target=SearchTarget.TITLE)
        assert page.total == 45
        assert len(page.items) == 5

    @pytest.mark.asyncio
    async def test_zero_hit_search_still_recorded(
        self, service: NovelSearchService, history: SearchHistoryStore
    ) -> None:
        page = await service.search("不存在")
        assert page.total == 0
        assert history.get()[0].result_count == 0

    @pytest.mark.asyncio
    async def test_get_novel(self, service: NovelSearchService) -> None:
        info, text = await service.get_novel(100)
        assert info.title == "斗破苍穹"
        assert text.startswith("第一章")

    @pytest.mark.asyncio
    async def test_get_unknown_novel(self, service: NovelSearchService) -> None:
        with pytest.raises(NovelNotFoundError):
            await service.get_novel(999)
