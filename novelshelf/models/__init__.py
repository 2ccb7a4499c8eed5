"""NovelShelf domain models.

    - fetch.py  -- acquisition results, options, probe outcomes, library records
    - cache.py  -- cache envelope and the records kept by the user stores
"""

from __future__ import annotations

from novelshelf.models.cache import (
    CacheEntry,
    CacheStats,
    ReadingProgress,
    SearchHistoryEntry,
    SearchTarget,
    Theme,
    UserPreferences,
)
from novelshelf.models.fetch import (
    CachedNovel,
    CustomJsonConfig,
    CustomJsonPreview,
    FetchOptions,
    FetchProgress,
    FetchResult,
    SourceType,
    ValidationOutcome,
)

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CachedNovel",
    "CustomJsonConfig",
    "CustomJsonPreview",
    "FetchOptions",
    "FetchProgress",
    "FetchResult",
    "ReadingProgress",
    "SearchHistoryEntry",
    "SearchTarget",
    "SourceType",
    "Theme",
    "UserPreferences",
    "ValidationOutcome",
]
