"""In-memory storage backend.

Dict-backed stand-in for the SQLite backend: used by tests and by the
``memory`` cache backend for throwaway sessions.  An optional byte quota
mimics a browser-style storage limit so the cache store's
cleanup-and-retry path can be exercised.
"""

from __future__ import annotations

import structlog

from novelshelf.interfaces.storage_backend import IStorageBackend
from novelshelf.utils.errors import StorageQuotaExceededError

logger = structlog.get_logger(logger_name=__name__)


def entry_size(key: str, value: str) -> int:
    """Bytes charged against a quota for one key/value pair (UTF-8)."""
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class MemoryStorageBackend(IStorageBackend):
    """Dict-backed :class:`IStorageBackend`.

    Parameters
    ----------
    quota_bytes:
        Maximum total size of keys plus values.  ``0`` disables the quota.
    """

    def __init__(self, quota_bytes: int = 0) -> None:
        self._items: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    # ------------------------------------------------------------------
    # IStorageBackend implementation
    # ------------------------------------------------------------------

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._quota_bytes > 0:
            current = self.used_bytes()
            if key in self._items:
                current -= entry_size(key, self._items[key])
            needed = current + entry_size(key, value)
            if needed > self._quota_bytes:
                logger.debug(
                    "memory_storage_quota_exceeded",
                    key=key,
                    needed=needed,
                    quota=self._quota_bytes,
                )
                raise StorageQuotaExceededError(
                    message=f"Writing {key!r} needs {needed} bytes, quota is {self._quota_bytes}",
                    provider_name=self.get_provider_name(),
                )
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)

    def get_provider_name(self) -> str:
        return "memory_storage"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def used_bytes(self) -> int:
        return sum(entry_size(k, v) for k, v in self._items.items())

    def __len__(self) -> int:
        return len(self._items)
