"""SQLite-backed persistent storage backend.

A single two-column table holds every namespaced cache key.  Uses sync
``sqlite3`` with WAL mode and a fresh connection per operation: each call
reads or writes one row, so blocking the event loop is negligible and the
file stays consistent if several processes share it.

Call :meth:`SQLiteStorageBackend.initialize` once before use.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

from novelshelf.interfaces.storage_backend import IStorageBackend
from novelshelf.utils.errors import StorageError, StorageQuotaExceededError
from novelshelf.utils.logging import get_logger

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS {table} (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_UPSERT_SQL = """\
INSERT INTO {table} (key, value)
VALUES (?, ?)
ON CONFLICT(key)
DO UPDATE SET value = excluded.value,
              updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

_SELECT_SQL = "SELECT value FROM {table} WHERE key = ?;"

_DELETE_SQL = "DELETE FROM {table} WHERE key = ?;"

_ALL_KEYS_SQL = "SELECT key FROM {table};"

# Byte size as stored: SQLite measures TEXT length in characters, so cast.
_USED_BYTES_SQL = (
    "SELECT COALESCE(SUM(LENGTH(CAST(key AS BLOB)) + LENGTH(CAST(value AS BLOB))), 0) "
    "FROM {table} WHERE key != ?;"
)


class SQLiteStorageBackend(IStorageBackend):
    """Persistent :class:`IStorageBackend` on a local SQLite file.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file; parent directories are created.
    table_name:
        Table to use, so several backends can share one database.
    quota_bytes:
        Maximum total size of keys plus values.  ``0`` disables the quota.
    """

    def __init__(
        self,
        db_path: str | Path,
        table_name: str = "kv_store",
        quota_bytes: int = 0,
    ) -> None:
        self._db_path = Path(db_path)
        self._table = table_name
        self._quota_bytes = quota_bytes
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Create the database file and table if needed."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._session() as conn:
            conn.execute(_CREATE_TABLE_SQL.format(table=self._table))
            conn.commit()

        self._logger.info(
            "sqlite_storage_initialized",
            db_path=str(self._db_path),
            table=self._table,
            quota_bytes=self._quota_bytes,
        )

    # ------------------------------------------------------------------
    # IStorageBackend implementation
    # ------------------------------------------------------------------

    def get_item(self, key: str) -> str | None:
        with self._session() as conn:
            row = conn.execute(_SELECT_SQL.format(table=self._table), (key,)).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with self._session() as conn:
            if self._quota_bytes > 0:
                (others,) = conn.execute(
                    _USED_BYTES_SQL.format(table=self._table), (key,)
                ).fetchone()
                needed = others + len(key.encode("utf-8")) + len(value.encode("utf-8"))
                if needed > self._quota_bytes:
                    raise StorageQuotaExceededError(
                        message=f"Writing {key!r} needs {needed} bytes, quota is {self._quota_bytes}",
                        provider_name=self.get_provider_name(),
                    )
            conn.execute(_UPSERT_SQL.format(table=self._table), (key, value))
            conn.commit()

    def remove_item(self, key: str) -> None:
        with self._session() as conn:
            conn.execute(_DELETE_SQL.format(table=self._table), (key,))
            conn.commit()

    def keys(self) -> list[str]:
        with self._session() as conn:
            cursor = conn.execute(_ALL_KEYS_SQL.format(table=self._table))
            return [row[0] for row in cursor.fetchall()]

    def get_provider_name(self) -> str:
        return f"sqlite_storage:{self._table}"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        """Open a new SQLite connection with WAL mode for concurrency."""
        conn = sqlite3.connect(str(self._db_path))
        try:
            conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        """Yield an open connection, closing it on exit.

        Any ``sqlite3.Error``, including failure to open the file, is
        re-raised as :class:`StorageError`.
        """
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(message=str(exc), provider_name=self.get_provider_name()) from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StorageError(message=str(exc), provider_name=self.get_provider_name()) from exc
        finally:
            conn.close()
