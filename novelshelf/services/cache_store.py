"""Namespaced key/value cache with per-entry expiry.

Every value is wrapped in a :class:`~novelshelf.models.cache.CacheEntry`
envelope (``data``, ``stored_at``, ``expires_at``), serialized to JSON and
written to an :class:`~novelshelf.interfaces.storage_backend.IStorageBackend`
under ``<namespace><key>``.  Keys outside the namespace are never read,
counted or deleted.

Cache writes are best-effort.  A failed write (typically a full quota)
triggers one sweep of expired entries and exactly one retry; if that also
fails, the failure is logged and :meth:`TTLCacheStore.set` returns
``False`` instead of raising.

Reads are self-healing: a missing key, an unparseable envelope and an
expired envelope all read as ``None``, and the stale row is deleted on the
way out.  A backend that cannot be read also reads as ``None``; the error
is logged.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from novelshelf.interfaces.storage_backend import IStorageBackend
from novelshelf.models.cache import CacheEntry, CacheStats
from novelshelf.pipeline.cancellation import CancellationToken
from novelshelf.utils.errors import CacheWriteError, StorageError
from novelshelf.utils.logging import get_logger

DEFAULT_NAMESPACE = "novel_reader_"
DEFAULT_TTL_SECONDS = 24 * 60 * 60

logger = get_logger(__name__)


class TTLCacheStore:
    """Expiring cache over a pluggable storage backend.

    Parameters
    ----------
    backend:
        Substrate holding the serialized envelopes.
    namespace:
        Prefix applied to every key.
    default_ttl:
        Lifetime in seconds used when :meth:`set` is called without one.
    clock:
        Returns the current Unix time in seconds; injectable for tests.
    """

    def __init__(
        self,
        backend: IStorageBackend,
        namespace: str = DEFAULT_NAMESPACE,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self._namespace = namespace
        self._default_ttl = default_ttl
        self._clock = clock

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def set(self, key: str, value: Any, ttl: float | None = None) -> bool:
        """Store *value* under *key* for *ttl* seconds.

        A non-positive *ttl* means the value is already expired: any
        existing entry is removed and nothing is written.

        Returns
        -------
        bool
            ``True`` when the value was written.
        """
        lifetime = self._default_ttl if ttl is None else ttl
        full_key = self._full_key(key)

        if lifetime <= 0:
            self._discard(key, full_key)
            logger.debug("cache_set_expired_on_arrival", key=key, ttl=lifetime)
            return False

        try:
            payload = self._envelope(value, lifetime)
        except ValueError as exc:
            logger.warning("cache_value_not_serializable", key=key, error=str(exc))
            return False

        try:
            self._backend.set_item(full_key, payload)
            return True
        except StorageError as exc:
            logger.warning("cache_set_failed", key=key, error=str(exc))

        try:
            cleaned = self.cleanup_expired()
            logger.info("cache_set_retry", key=key, cleaned=cleaned)
            # Timestamps are taken afresh so the retry gets its full lifetime.
            self._backend.set_item(full_key, self._envelope(value, lifetime))
            return True
        except StorageError as exc:
            failure = CacheWriteError(
                message=f"Could not cache {key!r} after cleanup: {exc.message}",
                provider_name="cache_store",
            )
            logger.warning("cache_write_failed", key=key, error=str(failure))
            return False

    def get(self, key: str) -> Any | None:
        """Return the live value for *key*, or ``None``.

        Missing, corrupt and expired entries are indistinguishable to the
        caller; the latter two are deleted.
        """
        full_key = self._full_key(key)
        try:
            raw = self._backend.get_item(full_key)
        except StorageError as exc:
            logger.warning("cache_get_failed", key=key, error=str(exc))
            return None
        if raw is None:
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("cache_entry_corrupt", key=key, error=str(exc)[:200])
            self._discard(key, full_key)
            return None

        if entry.is_expired(self._clock()):
            logger.debug("cache_entry_expired", key=key)
            self._discard(key, full_key)
            return None

        return entry.data

    def remove(self, key: str) -> None:
        self._backend.remove_item(self._full_key(key))

    def clear(self) -> int:
        """Delete every key in the namespace; returns how many were removed."""
        keys = self._namespaced_keys()
        for full_key in keys:
            self._backend.remove_item(full_key)
        logger.info("cache_cleared", namespace=self._namespace, removed=len(keys))
        return len(keys)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def cleanup_expired(self) -> int:
        """Delete expired and unparseable entries in the namespace.

        Returns the number of entries removed.
        """
        now = self._clock()
        removed = 0
        for full_key in self._namespaced_keys():
            raw = self._backend.get_item(full_key)
            if raw is None:
                continue
            try:
                expired = CacheEntry.model_validate_json(raw).is_expired(now)
            except ValidationError:
                expired = True
            if expired:
                self._backend.remove_item(full_key)
                removed += 1

        if removed:
            logger.info("cache_expired_cleaned", namespace=self._namespace, removed=removed)
        return removed

    def stats(self) -> CacheStats:
        """Scan the namespace without deleting anything.

        ``total_size`` is the UTF-8 byte size of the stored envelopes.
        Unparseable entries are left out of every count.
        """
        now = self._clock()
        total_size = 0
        item_count = 0
        expired_count = 0
        for full_key in self._namespaced_keys():
            raw = self._backend.get_item(full_key)
            if raw is None:
                continue
            try:
                entry = CacheEntry.model_validate_json(raw)
            except ValidationError:
                continue
            total_size += len(raw.encode("utf-8"))
            item_count += 1
            if entry.is_expired(now):
                expired_count += 1

        return CacheStats(
            total_size=total_size, item_count=item_count, expired_count=expired_count
        )

    async def sweep_periodically(
        self,
        interval: float,
        token: CancellationToken | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Run :meth:`cleanup_expired` every *interval* seconds until *token* fires."""
        logger.info("cache_sweeper_started", interval=interval)
        while token is None or not token.is_cancelled():
            await sleep(interval)
            if token is not None and token.is_cancelled():
                break
            try:
                self.cleanup_expired()
            except StorageError as exc:
                logger.warning("cache_sweep_failed", error=str(exc))
        logger.info("cache_sweeper_stopped")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _discard(self, key: str, full_key: str) -> None:
        try:
            self._backend.remove_item(full_key)
        except StorageError as exc:
            logger.warning("cache_remove_failed", key=key, error=str(exc))

    def _full_key(self, key: str) -> str:
        return f"{self._namespace}{key}"

    def _namespaced_keys(self) -> list[str]:
        return [k for k in self._backend.keys() if k.startswith(self._namespace)]

    def _envelope(self, value: Any, lifetime: float) -> str:
        now = self._clock()
        entry = CacheEntry(data=value, stored_at=now, expires_at=now + lifetime)
        return entry.model_dump_json()
