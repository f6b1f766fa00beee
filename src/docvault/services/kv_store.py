"""Durable key-value stores backing the cache.

Two implementations of :class:`KeyValueStoreProtocol` are provided:

- :class:`MemoryKeyValueStore` keeps values for the process lifetime.
- :class:`SQLiteKeyValueStore` stores orjson-encoded values in a single
  SQLite table (WAL mode) and runs blocking calls off the event loop.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

import orjson

from docvault.shared.errors import ErrorCode, create_cache_error
from docvault.shared.logging import log_operation_error, log_operation_success

logger = logging.getLogger(__name__)

MEMORY_DB_PATH = ":memory:"


class MemoryKeyValueStore:
    """In-process store; values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    async def get(self, key: str) -> Any | None:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class SQLiteKeyValueStore:
    """SQLite-backed key-value store.

    Values must be JSON-serializable. All statements run in a worker thread
    via :func:`asyncio.to_thread`; a lock serializes use of the shared
    connection.

    Attributes:
        db_path: Path of the SQLite database file (or ``":memory:"``)

    Example:
        >>> store = SQLiteKeyValueStore("cache/docvault.db")
        >>> await store.set("cache_B0001", {"value": {...}})
        >>> await store.get("cache_B0001")
        >>> store.close()
    """

    def __init__(self, db_path: Path | str) -> None:
        """Open (and create if needed) the database.

        Args:
            db_path: Path to the SQLite database file

        Raises:
            InfrastructureError: If the database cannot be opened
        """
        self.db_path = str(db_path)
        self._lock = threading.Lock()
        self.conn: sqlite3.Connection | None = None
        self._initialize_db()

    def _initialize_db(self) -> None:
        try:
            if self.db_path != MEMORY_DB_PATH:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self.conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                isolation_level=None,  # Auto-commit mode
            )
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL
                )
                """,
            )
            log_operation_success(
                logger=logger,
                operation="initialize_db",
                duration_ms=0,
                context={"db_path": self.db_path},
            )
        except (sqlite3.Error, OSError) as e:
            error = create_cache_error(
                ErrorCode.CACHE_ERROR,
                f"Failed to initialize SQLite store: {e!s}",
                operation="initialize_db",
                original_error=e,
            )
            log_operation_error(logger=logger, error=error)
            raise error from e

    def _connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise create_cache_error(
                ErrorCode.CACHE_ERROR,
                "Database connection not initialized",
                operation="connection",
            )
        return self.conn

    def _get_sync(self, key: str) -> Any | None:
        with self._lock:
            row = self._connection().execute(
                "SELECT value FROM kv_store WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return None
        return orjson.loads(row[0])

    def _set_sync(self, key: str, value: Any) -> None:
        payload = orjson.dumps(value)
        with self._lock:
            self._connection().execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) "
                "VALUES (?, ?, CURRENT_TIMESTAMP)",
                (key, payload),
            )

    def _delete_sync(self, key: str) -> None:
        with self._lock:
            self._connection().execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def _clear_sync(self) -> None:
        with self._lock:
            self._connection().execute("DELETE FROM kv_store")

    async def get(self, key: str) -> Any | None:
        """Read a value.

        Raises:
            InfrastructureError: CACHE_READ_FAILED or CACHE_CORRUPTED
        """
        try:
            return await asyncio.to_thread(self._get_sync, key)
        except orjson.JSONDecodeError as e:
            raise create_cache_error(
                ErrorCode.CACHE_CORRUPTED,
                f"Stored value is not valid JSON: {e!s}",
                key=key,
                operation="kv_get",
                original_error=e,
            ) from e
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_READ_FAILED,
                f"Failed to read from SQLite store: {e!s}",
                key=key,
                operation="kv_get",
                original_error=e,
            ) from e

    async def set(self, key: str, value: Any) -> None:
        """Write a value.

        Raises:
            InfrastructureError: CACHE_SERIALIZATION_ERROR or CACHE_WRITE_FAILED
        """
        try:
            await asyncio.to_thread(self._set_sync, key, value)
        except orjson.JSONEncodeError as e:
            raise create_cache_error(
                ErrorCode.CACHE_SERIALIZATION_ERROR,
                f"Value is not JSON-serializable: {e!s}",
                key=key,
                operation="kv_set",
                original_error=e,
            ) from e
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_WRITE_FAILED,
                f"Failed to write to SQLite store: {e!s}",
                key=key,
                operation="kv_set",
                original_error=e,
            ) from e

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._delete_sync, key)
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_WRITE_FAILED,
                f"Failed to delete from SQLite store: {e!s}",
                key=key,
                operation="kv_delete",
                original_error=e,
            ) from e

    async def clear(self) -> None:
        try:
            await asyncio.to_thread(self._clear_sync)
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_WRITE_FAILED,
                f"Failed to clear SQLite store: {e!s}",
                operation="kv_clear",
                original_error=e,
            ) from e

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self.conn:
                self.conn.close()
                self.conn = None
                logger.debug("Closed SQLite store connection: %s", self.db_path)


__all__ = ["MemoryKeyValueStore", "SQLiteKeyValueStore"]
