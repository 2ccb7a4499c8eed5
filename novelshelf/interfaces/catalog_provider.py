"""Abstract base class for the built-in novel catalog.

The catalog is the pre-built, read-only list of novels shipped with a
deployment (an index plus per-novel text files).  It is an external
collaborator: NovelShelf only consumes it, through
:class:`~novelshelf.services.search_service.NovelSearchService`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from novelshelf.models.cache import SearchTarget


@dataclass(frozen=True)
class NovelInfo:
    """Catalog metadata for one novel.

    Attributes
    ----------
    id:
        Catalog-wide numeric identifier.
    title:
        Display title.
    author:
        Author name; may be the unknown-author sentinel.
    file_size:
        Human-readable size string.
    path_parts:
        Category path segments, outermost first.
    """

    id: int
    title: str
    author: str = ""
    file_size: str = ""
    path_parts: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SearchHit:
    """A single catalog search match: ``count`` is the number of occurrences."""

    id: int
    title: str
    count: int = 0


class ICatalogProvider(ABC):
    """Contract for the read-only novel catalog."""

    @abstractmethod
    async def get_by_id(self, novel_id: int) -> NovelInfo | None:
        """Return the catalog entry for *novel_id*, or ``None``."""

    @abstractmethod
    async def get_all(self) -> list[NovelInfo]:
        """Return every novel in catalog order."""

    @abstractmethod
    async def search(self, keyword: str, target: SearchTarget) -> list[SearchHit]:
        """Search titles, contents or both for *keyword*.

        Parameters
        ----------
        keyword:
            Non-empty search term.
        target:
            Which text to match against.
        """

    @abstractmethod
    async def load_content(self, novel_id: int) -> str:
        """Return the full text of *novel_id*.

        Raises
        ------
        novelshelf.utils.errors.NovelNotFoundError
            If the id is unknown.
        """
