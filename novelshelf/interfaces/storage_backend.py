"""Abstract base class for the key/value substrate under the cache store.

The TTL cache store never talks to a concrete database; it is handed an
``IStorageBackend`` and a namespace prefix.  Production uses the SQLite
backend, tests and throwaway sessions use the in-memory one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IStorageBackend(ABC):
    """Contract for a flat string-to-string store.

    Operations are synchronous: each one is a single small read or write,
    and the cache store performs its read-modify-write cycles without
    awaiting in between.
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the raw value stored under *key*, or ``None``."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value.

        Raises
        ------
        novelshelf.utils.errors.StorageQuotaExceededError
            If the write would push the backend past its byte quota.
        novelshelf.utils.errors.StorageError
            For any other substrate failure.
        """

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete *key*; a no-op if it does not exist."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return a snapshot of every stored key."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sqlite_storage"``."""
