"""Unit tests for the reading progress, search history, preferences and content stores."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from novelshelf.models.cache import SearchTarget, Theme, UserPreferences
from novelshelf.providers.storage.sqlite_storage import SQLiteStorageBackend
from novelshelf.services.cache_store import TTLCacheStore
from novelshelf.services.user_stores import (
    READING_PROGRESS_KEY,
    READING_PROGRESS_LIMIT,
    READING_PROGRESS_TTL,
    SEARCH_HISTORY_LIMIT,
    SEARCH_HISTORY_TTL,
    ContentCacheStore,
    PreferencesStore,
    ReadingProgressStore,
    SearchHistoryStore,
    load_records,
)
from tests.conftest import FakeClock


# ======================================================================
# ReadingProgressStore
# ======================================================================


class TestReadingProgressStore:
    @pytest.fixture()
    def store(self, cache: TTLCacheStore) -> ReadingProgressStore:
        return ReadingProgressStore(cache)

    def test_save_and_get(self, store: ReadingProgressStore, clock: FakeClock) -> None:
        saved = store.save(1, "斗破苍穹", 42.5, page=3, scroll_position=120.0)
        assert saved.timestamp == clock.now
        assert store.get(1) == saved

    def test_get_unknown_returns_none(self, store: ReadingProgressStore) -> None:
        assert store.get(999) is None

    def test_one_entry_per_novel(self, store: ReadingProgressStore, clock: FakeClock) -> None:
        store.save(1, "A", 10)
        clock.advance(5)
        store.save(1, "A", 80)

        entries = store.get_all()
        assert len(entries) == 1
        assert entries[0].progress == 80
        assert entries[0].timestamp == clock.now

    def test_bounded_keeps_most_recent(self, store: ReadingProgressStore, clock: FakeClock) -> None:
        for novel_id in range(READING_PROGRESS_LIMIT + 1):
            store.save(novel_id, f"Novel {novel_id}", 1)
            clock.advance(1)

        entries = store.get_all()
        assert len(entries) == READING_PROGRESS_LIMIT
        assert store.get(0) is None
        assert store.get(READING_PROGRESS_LIMIT) is not None

    def test_expires_after_seven_days(self, store: ReadingProgressStore, clock: FakeClock) -> None:
        store.save(1, "A", 10)
        clock.advance(READING_PROGRESS_TTL)
        assert store.get_all() == []

    def test_remove(self, store: ReadingProgressStore) -> None:
        store.save(1, "A", 10)
        store.save(2, "B", 20)
        store.remove(1)
        assert [e.novel_id for e in store.get_all()] == [2]

    def test_progress_out_of_range_rejected(self, store: ReadingProgressStore) -> None:
        with pytest.raises(ValidationError):
            store.save(1, "A", 150)

    def test_invalid_records_dropped_on_load(self, cache: TTLCacheStore, clock: FakeClock) -> None:
        good = {"novel_id": 1, "title": "A", "progress": 5, "timestamp": clock.now}
        cache.set(READING_PROGRESS_KEY, [good, {"bogus": True}])
        store = ReadingProgressStore(cache)
        assert [e.novel_id for e in store.get_all()] == [1]


# ======================================================================
# SearchHistoryStore
# ======================================================================


class TestSearchHistoryStore:
    @pytest.fixture()
    def store(self, cache: TTLCacheStore) -> SearchHistoryStore:
        return SearchHistoryStore(cache)

    def test_newest_first(self, store: SearchHistoryStore) -> None:
        store.save("斗破", SearchTarget.TITLE, 1)
        store.save("萧炎", SearchTarget.CONTENT, 3)
        assert [e.keyword for e in store.get()] == ["萧炎", "斗破"]

    def test_repeat_updates_in_place(self, store: SearchHistoryStore, clock: FakeClock) -> None:
        store.save("a", "title", 1)
        store.save("b", "title", 2)
        clock.advance(10)
        store.save("a", "title", 7)

        entries = store.get()
        assert [e.keyword for e in entries] == ["b", "a"]
        assert entries[1].result_count == 7
        assert entries[1].timestamp == clock.now

    def test_same_keyword_different_target_is_distinct(self, store: SearchHistoryStore) -> None:
        store.save("a", SearchTarget.TITLE)
        store.save("a", SearchTarget.BOTH)
        assert len(store.get()) == 2

    def test_bounded(self, store: SearchHistoryStore) -> None:
        for i in range(SEARCH_HISTORY_LIMIT + 5):
            store.save(f"k{i}", SearchTarget.TITLE)

        entries = store.get(limit=100)
        assert len(entries) == SEARCH_HISTORY_LIMIT
        assert entries[0].keyword == f"k{SEARCH_HISTORY_LIMIT + 4}"

    def test_default_limit(self, store: SearchHistoryStore) -> None:
        for i in range(30):
            store.save(f"k{i}", SearchTarget.TITLE)
        assert len(store.get()) == 20

    def test_expires_after_thirty_days(self, store: SearchHistoryStore, clock: FakeClock) -> None:
        store.save("a", SearchTarget.TITLE)
        clock.advance(SEARCH_HISTORY_TTL)
        assert store.get() == []

    def test_clear(self, store: SearchHistoryStore) -> None:
        store.save("a", SearchTarget.TITLE)
        store.clear()
        assert store.get() == []

    def test_unknown_target_rejected(self, store: SearchHistoryStore) -> None:
        with pytest.raises(ValueError):
            store.save("a", "everywhere")


# ======================================================================
# PreferencesStore
# ======================================================================


class TestPreferencesStore:
    @pytest.fixture()
    def store(self, cache: TTLCacheStore) -> PreferencesStore:
        return PreferencesStore(cache)

    def test_defaults(self, store: PreferencesStore) -> None:
        prefs = store.get()
        assert prefs == UserPreferences()
        assert prefs.font_size == 18
        assert prefs.theme is Theme.AUTO

    def test_partial_updates_merge(self, store: PreferencesStore) -> None:
        store.save(font_size=20)
        prefs = store.save(theme="dark")
        assert prefs.font_size == 20
        assert prefs.theme is Theme.DARK
        assert store.get() == prefs

    def test_unknown_field_rejected_and_nothing_written(self, store: PreferencesStore) -> None:
        store.save(font_size=22)
        with pytest.raises(ValidationError):
            store.save(colour="red")
        assert store.get().font_size == 22

    def test_shared_cache_sees_same_preferences(self, cache: TTLCacheStore) -> None:
        PreferencesStore(cache).save(auto_scroll=True)
        assert PreferencesStore(cache).get().auto_scroll is True


# ======================================================================
# ContentCacheStore
# ======================================================================


class TestContentCacheStore:
    def test_save_and_get(self, cache: TTLCacheStore) -> None:
        store = ContentCacheStore(cache)
        assert store.save(7, "第一章 正文") is True
        assert store.get(7) == "第一章 正文"
        assert cache.get(ContentCacheStore.key_for(7)) == "第一章 正文"

    def test_oversize_content_skipped(self, cache: TTLCacheStore) -> None:
        store = ContentCacheStore(cache, max_bytes=10)
        # Four CJK characters are 12 UTF-8 bytes.
        assert store.save(7, "你好你好") is False
        assert store.get(7) is None

    def test_limit_is_inclusive(self, cache: TTLCacheStore) -> None:
        store = ContentCacheStore(cache, max_bytes=12)
        assert store.save(7, "你好你好") is True

    def test_expires_after_a_day(self, cache: TTLCacheStore, clock: FakeClock) -> None:
        store = ContentCacheStore(cache)
        store.save(7, "text")
        clock.advance(24 * 60 * 60)
        assert store.get(7) is None

    def test_remove(self, cache: TTLCacheStore) -> None:
        store = ContentCacheStore(cache)
        store.save(7, "text")
        store.remove(7)
        assert store.get(7) is None

    def test_unreachable_backend_reports_not_written(self, tmp_path: Path, clock: FakeClock) -> None:
        backend = SQLiteStorageBackend(db_path=tmp_path / "missing_dir" / "cache.db")
        store = ContentCacheStore(TTLCacheStore(backend, clock=clock))

        assert store.save(1, "text") is False
        assert store.get(1) is None


def test_load_records_non_list_is_empty(cache: TTLCacheStore) -> None:
    cache.set("weird", {"not": "a list"})
    assert load_records(cache, "weird", UserPreferences) == []
