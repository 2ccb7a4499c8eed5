"""Policy wrappers over :class:`~novelshelf.services.cache_store.TTLCacheStore`.

Each store keeps one bounded record under a fixed cache key and follows
the same cycle on every write: read the whole list, change it in memory,
write the whole list back.  No store keeps state of its own between
calls, so two stores built over the same cache see the same data.

    Store                 Key                    Bound   TTL
    ────────────────────────────────────────────────────────────
    ReadingProgressStore  reading_progress       100     7 days
    SearchHistoryStore    search_history         50      30 days
    PreferencesStore      user_preferences       1       cache default
    ContentCacheStore     novel_content_<id>     5 MiB   24 hours
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from novelshelf.models.cache import (
    ReadingProgress,
    SearchHistoryEntry,
    SearchTarget,
    UserPreferences,
)
from novelshelf.services.cache_store import TTLCacheStore
from novelshelf.utils.formatting import format_file_size
from novelshelf.utils.logging import get_logger

logger = get_logger(__name__)

_DAY = 24 * 60 * 60

READING_PROGRESS_KEY = "reading_progress"
READING_PROGRESS_LIMIT = 100
READING_PROGRESS_TTL = 7 * _DAY

SEARCH_HISTORY_KEY = "search_history"
SEARCH_HISTORY_LIMIT = 50
SEARCH_HISTORY_TTL = 30 * _DAY

PREFERENCES_KEY = "user_preferences"

CONTENT_KEY_PREFIX = "novel_content_"
CONTENT_TTL = _DAY
MAX_CACHED_CONTENT_BYTES = 5 * 1024 * 1024


def load_records(cache: TTLCacheStore, key: str, model: type[BaseModel]) -> list[Any]:
    """Read a cached list of *model* records, dropping any that fail validation."""
    raw = cache.get(key)
    if not isinstance(raw, list):
        return []

    records = []
    for item in raw:
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning("cached_record_invalid", key=key, error=str(exc)[:200])
    return records


def dump_records(records: list[BaseModel]) -> list[dict[str, Any]]:
    return [record.model_dump(mode="json") for record in records]


# ---------------------------------------------------------------------------
# Reading progress
# ---------------------------------------------------------------------------


class ReadingProgressStore:
    """Per-novel reading position, one live entry per ``novel_id``."""

    def __init__(self, cache: TTLCacheStore) -> None:
        self._cache = cache

    def save(
        self,
        novel_id: int,
        title: str,
        progress: float,
        page: int = 0,
        scroll_position: float = 0.0,
    ) -> ReadingProgress:
        record = ReadingProgress(
            novel_id=novel_id,
            title=title,
            progress=progress,
            page=page,
            scroll_position=scroll_position,
            timestamp=self._cache.clock(),
        )

        entries: list[ReadingProgress] = load_records(
            self._cache, READING_PROGRESS_KEY, ReadingProgress
        )
        for index, existing in enumerate(entries):
            if existing.novel_id == novel_id:
                entries[index] = record
                break
        else:
            entries.append(record)

        if len(entries) > READING_PROGRESS_LIMIT:
            entries.sort(key=lambda e: e.timestamp, reverse=True)
            del entries[READING_PROGRESS_LIMIT:]

        self._cache.set(READING_PROGRESS_KEY, dump_records(entries), READING_PROGRESS_TTL)
        return record

    def get(self, novel_id: int) -> ReadingProgress | None:
        for entry in self.get_all():
            if entry.novel_id == novel_id:
                return entry
        return None

    def get_all(self) -> list[ReadingProgress]:
        return load_records(self._cache, READING_PROGRESS_KEY, ReadingProgress)

    def remove(self, novel_id: int) -> None:
        entries = [e for e in self.get_all() if e.novel_id != novel_id]
        self._cache.set(READING_PROGRESS_KEY, dump_records(entries), READING_PROGRESS_TTL)


# ---------------------------------------------------------------------------
# Search history
# ---------------------------------------------------------------------------


class SearchHistoryStore:
    """Most-recent-first search log, unique per ``(keyword, target)``.

    Repeating a search refreshes its timestamp and result count but keeps
    its position; a new search goes to the front.
    """

    def __init__(self, cache: TTLCacheStore) -> None:
        self._cache = cache

    def save(
        self, keyword: str, target: SearchTarget | str, result_count: int = 0
    ) -> SearchHistoryEntry:
        record = SearchHistoryEntry(
            keyword=keyword,
            target=SearchTarget(target),
            timestamp=self._cache.clock(),
            result_count=result_count,
        )

        entries: list[SearchHistoryEntry] = load_records(
            self._cache, SEARCH_HISTORY_KEY, SearchHistoryEntry
        )
        for index, existing in enumerate(entries):
            if existing.keyword == record.keyword and existing.target == record.target:
                entries[index] = record
                break
        else:
            entries.insert(0, record)

        del entries[SEARCH_HISTORY_LIMIT:]

        self._cache.set(SEARCH_HISTORY_KEY, dump_records(entries), SEARCH_HISTORY_TTL)
        return record

    def get(self, limit: int = 20) -> list[SearchHistoryEntry]:
        entries = load_records(self._cache, SEARCH_HISTORY_KEY, SearchHistoryEntry)
        return entries[:limit]

    def clear(self) -> None:
        self._cache.remove(SEARCH_HISTORY_KEY)


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


class PreferencesStore:
    """Single preferences record, merged field by field over the defaults."""

    def __init__(self, cache: TTLCacheStore) -> None:
        self._cache = cache

    def get(self) -> UserPreferences:
        raw = self._cache.get(PREFERENCES_KEY)
        if raw is None:
            return UserPreferences()
        try:
            return UserPreferences.model_validate(raw)
        except ValidationError as exc:
            logger.warning("preferences_invalid", error=str(exc)[:200])
            return UserPreferences()

    def save(self, **changes: Any) -> UserPreferences:
        """Merge *changes* into the stored preferences.

        Raises ``pydantic.ValidationError`` for unknown fields or bad values;
        nothing is written in that case.
        """
        merged = UserPreferences.model_validate({**self.get().model_dump(), **changes})
        self._cache.set(PREFERENCES_KEY, merged.model_dump(mode="json"))
        return merged


# ---------------------------------------------------------------------------
# Novel content
# ---------------------------------------------------------------------------


class ContentCacheStore:
    """Decoded novel text keyed by novel id, skipped when too large.

    Parameters
    ----------
    cache:
        Underlying TTL cache.
    max_bytes:
        Largest UTF-8 size that will be cached.
    """

    def __init__(self, cache: TTLCacheStore, max_bytes: int = MAX_CACHED_CONTENT_BYTES) -> None:
        self._cache = cache
        self._max_bytes = max_bytes

    @staticmethod
    def key_for(novel_id: int | str) -> str:
        return f"{CONTENT_KEY_PREFIX}{novel_id}"

    def save(self, novel_id: int | str, content: str) -> bool:
        """Cache *content*; returns ``False`` when it was skipped or not written."""
        size = len(content.encode("utf-8"))
        if size > self._max_bytes:
            logger.warning(
                "content_cache_skipped",
                novel_id=novel_id,
                size=size,
                size_human=format_file_size(size),
                limit=self._max_bytes,
            )
            return False
        return self._cache.set(self.key_for(novel_id), content, CONTENT_TTL)

    def get(self, novel_id: int | str) -> str | None:
        content = self._cache.get(self.key_for(novel_id))
        return content if isinstance(content, str) else None

    def remove(self, novel_id: int | str) -> None:
        self._cache.remove(self.key_for(novel_id))
