"""Abstract contracts for the components NovelShelf does not own.

    Interface          ->  Implementations
    ----------------------------------------------------------------
    IStorageBackend    ->  MemoryStorageBackend, SQLiteStorageBackend
    ICatalogProvider   ->  (external; consumed by NovelSearchService)
"""

from novelshelf.interfaces.catalog_provider import ICatalogProvider, NovelInfo, SearchHit
from novelshelf.interfaces.storage_backend import IStorageBackend

__all__ = ["ICatalogProvider", "IStorageBackend", "NovelInfo", "SearchHit"]
