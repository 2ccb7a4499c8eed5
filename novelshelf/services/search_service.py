"""Paged catalog browsing and search.

Thin layer over an :class:`~novelshelf.interfaces.catalog_provider.ICatalogProvider`:
an empty keyword lists the whole catalog, anything else runs a search.
Every non-empty search is recorded in the search history with its total
hit count.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from novelshelf.interfaces.catalog_provider import ICatalogProvider, NovelInfo, SearchHit
from novelshelf.models.cache import SearchTarget
from novelshelf.services.user_stores import SearchHistoryStore
from novelshelf.utils.errors import NovelNotFoundError
from novelshelf.utils.logging import get_logger

logger = get_logger(__name__)

PAGE_SIZE = 20

_T = TypeVar("_T")


@dataclass(frozen=True)
class Page(Generic[_T]):
    """One page of results; ``page`` is 1-based."""

    items: list[_T] = field(default_factory=list)
    page: int = 1
    page_size: int = PAGE_SIZE
    total: int = 0

    @property
    def total_pages(self) -> int:
        return max(1, -(-self.total // self.page_size))

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages


def paginate(items: list[_T], page: int, page_size: int = PAGE_SIZE) -> Page[_T]:
    page = max(1, page)
    start = (page - 1) * page_size
    return Page(
        items=items[start : start + page_size],
        page=page,
        page_size=page_size,
        total=len(items),
    )


class NovelSearchService:
    """Catalog listing, search and content loading.

    Parameters
    ----------
    catalog:
        The built-in novel catalog.
    history:
        Where non-empty searches are recorded; ``None`` disables recording.
    """

    def __init__(
        self,
        catalog: ICatalogProvider,
        history: SearchHistoryStore | None = None,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self._catalog = catalog
        self._history = history
        self._page_size = page_size

    async def list_novels(self, page: int = 1) -> Page[NovelInfo]:
        return paginate(await self._catalog.get_all(), page, self._page_size)

    async def search(
        self,
        keyword: str,
        target: SearchTarget | str = SearchTarget.TITLE,
        page: int = 1,
    ) -> Page[NovelInfo] | Page[SearchHit]:
        """Search the catalog; an empty *keyword* lists every novel instead."""
        keyword = keyword.strip()
        if not keyword:
            return await self.list_novels(page)

        search_target = SearchTarget(target)
        hits = await self._catalog.search(keyword, search_target)
        logger.info("catalog_searched", keyword=keyword, target=search_target.value, hits=len(hits))

        if self._history is not None:
            self._history.save(keyword, search_target, len(hits))
        return paginate(hits, page, self._page_size)

    async def get_novel(self, novel_id: int) -> tuple[NovelInfo, str]:
        """Return catalog metadata and full text for *novel_id*.

        Raises
        ------
        NovelNotFoundError
            The id is not in the catalog.
        """
        info = await self._catalog.get_by_id(novel_id)
        if info is None:
            raise NovelNotFoundError(
                message=f"Novel {novel_id} is not in the catalog", provider_name="catalog"
            )
        return info, await self._catalog.load_content(novel_id)
