"""Storage backends for the TTL cache store.

SQLiteStorageBackend persists the cache across runs; MemoryStorageBackend
is a dict-based double for tests and ephemeral sessions.  Both implement
IStorageBackend, so the cache store is unaware of which one it is using.
"""

from novelshelf.providers.storage.memory_storage import MemoryStorageBackend
from novelshelf.providers.storage.sqlite_storage import SQLiteStorageBackend

__all__ = ["MemoryStorageBackend", "SQLiteStorageBackend"]
