"""Unit tests for NovelLibrary."""

from __future__ import annotations

import httpx
import pytest

from novelshelf.models.fetch import SourceType
from novelshelf.services.cache_store import TTLCacheStore
from novelshelf.services.custom_json import CustomJsonIngestor
from novelshelf.services.library_service import (
    LIBRARY_INDEX_KEY,
    ONLINE_CATEGORY,
    UPLOAD_CATEGORY,
    NovelLibrary,
)
from novelshelf.services.novel_fetcher import NovelFetcher
from novelshelf.services.user_stores import ContentCacheStore
from novelshelf.utils.errors import FetchFailedError, NovelNotFoundError
from novelshelf.utils.metadata import UNKNOWN_AUTHOR
from tests.conftest import START_TIME, FakeClock, mock_client

URL = "https://books.example.com/doupo.txt"
JSON_URL = "https://api.example.com/book/1"
NOVEL = "《斗破苍穹》\n作者：天蚕土豆\n第一章 陨落的天才"


class FakeServer:
    """Serves a mutable text body and a fixed JSON document."""

    def __init__(self, body: str = NOVEL) -> None:
        self.body = body
        self.fail = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            return httpx.Response(503)
        if request.url.host == "api.example.com":
            return httpx.Response(200, json={"title": "遮天", "content": "第一章 星空"})
        headers = {"content-type": "text/plain; charset=utf-8"}
        if request.method == "HEAD":
            return httpx.Response(200, headers=headers)
        return httpx.Response(200, headers=headers, content=self.body.encode())


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture()
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture()
def library(cache: TTLCacheStore, server: FakeServer) -> NovelLibrary:
    client = mock_client(server)
    return NovelLibrary(
        cache,
        NovelFetcher(http_client=client, sleep=_no_sleep),
        CustomJsonIngestor(http_client=client),
    )


# ======================================================================
# Adding novels
# ======================================================================


class TestAddingNovels:
    @pytest.mark.asyncio
    async def test_cache_from_url(self, library: NovelLibrary) -> None:
        novel, content = await library.cache_from_url(URL)

        assert content == NOVEL
        assert novel.id == int(START_TIME * 1000)
        assert novel.title == "斗破苍穹"
        assert novel.source_type is SourceType.URL
        assert novel.source_url == URL
        assert novel.file_path == URL
        assert novel.path_parts == [ONLINE_CATEGORY, "天蚕土豆"]
        assert novel.word_count == len(NOVEL)
        assert novel.last_update == START_TIME
        assert library.get_cached_novel(novel.id) == (novel, NOVEL)

    def test_cache_upload(self, library: NovelLibrary) -> None:
        novel, content = library.cache_upload("随便写点什么".encode("gbk"), "我的小说.txt")

        assert content == "随便写点什么"
        assert novel.title == "我的小说"
        assert novel.source_type is SourceType.UPLOAD
        assert novel.source_url is None
        assert novel.path_parts == [UPLOAD_CATEGORY, UNKNOWN_AUTHOR]

    @pytest.mark.asyncio
    async def test_cache_from_custom_json(self, library: NovelLibrary) -> None:
        novel, content = await library.cache_from_custom_json(JSON_URL)

        assert content == "第一章 星空"
        assert novel.source_type is SourceType.CUSTOM
        assert novel.source_url == JSON_URL
        assert novel.file_path == ""
        assert novel.path_parts == ["遮天"]

    @pytest.mark.asyncio
    async def test_ids_unique_within_same_millisecond(self, library: NovelLibrary) -> None:
        first, _ = await library.cache_from_url(URL)
        second = library.cache_upload(b"hello", "a.txt")[0]
        assert second.id == first.id + 1

    @pytest.mark.asyncio
    async def test_fetch_failure_stores_nothing(
        self, library: NovelLibrary, server: FakeServer
    ) -> None:
        server.fail = True
        with pytest.raises(FetchFailedError):
            await library.cache_from_url(URL)
        assert library.list_cached_novels() == []

    def test_oversize_content_recorded_without_text(
        self, cache: TTLCacheStore, server: FakeServer
    ) -> None:
        client = mock_client(server)
        library = NovelLibrary(
            cache,
            NovelFetcher(http_client=client),
            CustomJsonIngestor(http_client=client),
            content_store=ContentCacheStore(cache, max_bytes=5),
        )
        novel, content = library.cache_upload("很长的正文内容".encode(), "long.txt")

        assert content == "很长的正文内容"
        assert library.get_cached_novel(novel.id) == (novel, None)


# ======================================================================
# Reading the library
# ======================================================================


class TestReadingLibrary:
    def test_list_most_recent_first(self, library: NovelLibrary, clock: FakeClock) -> None:
        older = library.cache_upload(b"one", "one.txt")[0]
        clock.advance(60)
        newer = library.cache_upload(b"two", "two.txt")[0]

        assert [n.id for n in library.list_cached_novels()] == [newer.id, older.id]

    def test_unknown_id(self, library: NovelLibrary) -> None:
        assert library.get_cached_novel(12345) is None

    def test_text_expires_before_index(self, library: NovelLibrary, clock: FakeClock) -> None:
        novel = library.cache_upload(b"hello", "a.txt")[0]
        clock.advance(24 * 60 * 60)

        assert library.get_cached_novel(novel.id) == (novel, None)

    def test_remove(self, library: NovelLibrary, cache: TTLCacheStore) -> None:
        novel = library.cache_upload(b"hello", "a.txt")[0]

        assert library.remove_cached_novel(novel.id) is True
        assert library.get_cached_novel(novel.id) is None
        assert cache.get(ContentCacheStore.key_for(novel.id)) is None
        assert library.remove_cached_novel(novel.id) is False

    def test_index_stored_under_fixed_key(self, library: NovelLibrary, cache: TTLCacheStore) -> None:
        library.cache_upload(b"hello", "a.txt")
        raw = cache.get(LIBRARY_INDEX_KEY)
        assert isinstance(raw, list)
        assert raw[0]["source_type"] == "upload"


# ======================================================================
# update_url_novel
# ======================================================================


class TestUpdateUrlNovel:
    @pytest.mark.asyncio
    async def test_unchanged(self, library: NovelLibrary, clock: FakeClock) -> None:
        novel, _ = await library.cache_from_url(URL)
        clock.advance(60)

        content, updated = await library.update_url_novel(novel.id, URL)

        assert updated is False
        assert content == NOVEL
        assert library.get_cached_novel(novel.id)[0].last_update == START_TIME

    @pytest.mark.asyncio
    async def test_changed(
        self, library: NovelLibrary, server: FakeServer, clock: FakeClock
    ) -> None:
        novel, _ = await library.cache_from_url(URL)
        server.body = NOVEL + "\n第二章 斗之气"
        clock.advance(60)

        content, updated = await library.update_url_novel(novel.id, URL)

        assert updated is True
        stored, text = library.get_cached_novel(novel.id)
        assert text == content == server.body
        assert stored.word_count == len(server.body)
        assert stored.last_update == START_TIME + 60
        assert len(library.list_cached_novels()) == 1

    @pytest.mark.asyncio
    async def test_unknown_id(self, library: NovelLibrary) -> None:
        with pytest.raises(NovelNotFoundError):
            await library.update_url_novel(999, URL)
