"""Expiring, size-bounded document cache.

The cache keeps its entries and eviction index in memory and mirrors every
change to a durable key-value store. In-memory state is always updated
synchronously before the first ``await`` of an operation, so concurrent
coroutines on the same event loop observe a consistent cache; durable
writes are serialized in mutation order and their failures never reach the
caller.

Eviction is by insertion time, not by access time: when the cache is
nearly full the oldest inserted entries go first, even if they were read
recently.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from docvault.config.models.cache_settings import CacheSettings
from docvault.services.kv_store import MemoryKeyValueStore
from docvault.shared.constants import StorageKeys
from docvault.shared.errors import (
    DocVaultError,
    ErrorCode,
    create_cache_error,
)
from docvault.shared.logging import log_operation_error
from docvault.shared.protocols import KeyValueStoreProtocol

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached record.

    Attributes:
        key: Document key
        value: Parsed record (owned by the cache)
        inserted_at: Epoch seconds of the insert
        last_accessed_at: Epoch seconds of the latest hit
    """

    key: str
    value: Any
    inserted_at: float
    last_accessed_at: float

    def to_record(self) -> dict[str, Any]:
        return {
            StorageKeys.FIELD_VALUE: self.value,
            StorageKeys.FIELD_INSERTED_AT: self.inserted_at,
            StorageKeys.FIELD_LAST_ACCESSED_AT: self.last_accessed_at,
        }

    @classmethod
    def from_record(cls, key: str, record: Any) -> CacheEntry | None:
        """Rebuild an entry from its durable record, None if malformed."""
        if not isinstance(record, dict) or StorageKeys.FIELD_VALUE not in record:
            return None
        inserted_at = record.get(StorageKeys.FIELD_INSERTED_AT)
        if not isinstance(inserted_at, (int, float)) or isinstance(inserted_at, bool):
            return None
        last_accessed_at = record.get(StorageKeys.FIELD_LAST_ACCESSED_AT, inserted_at)
        if not isinstance(last_accessed_at, (int, float)):
            last_accessed_at = inserted_at
        return cls(
            key=key,
            value=record[StorageKeys.FIELD_VALUE],
            inserted_at=float(inserted_at),
            last_accessed_at=float(last_accessed_at),
        )


@dataclass(frozen=True)
class IndexRecord:
    """Eviction index record, one per live entry."""

    key: str
    inserted_at: float

    def to_record(self) -> dict[str, Any]:
        return {StorageKeys.FIELD_KEY: self.key, StorageKeys.FIELD_INSERTED_AT: self.inserted_at}


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache counters.

    Attributes:
        hits: Lookups that returned a live entry
        misses: Lookups that found nothing or an expired entry
        live_entries: Entries currently stored
        max_entries: Configured ceiling
        last_cleanup_at: Epoch seconds of the latest eviction, None if never
    """

    hits: int
    misses: int
    live_entries: int
    max_entries: int
    last_cleanup_at: float | None

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    @property
    def usage(self) -> float:
        return self.live_entries / self.max_entries

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_ratio": self.hit_ratio,
            "usage": self.usage,
            "live_entries": self.live_entries,
            "max_entries": self.max_entries,
            "last_cleanup_at": self.last_cleanup_at,
        }


class CacheStore:
    """TTL cache with insertion-ordered eviction and hit/miss statistics.

    Args:
        settings: TTL, size ceiling and eviction policy
        store: Durable key-value store (defaults to an in-memory store)
        clock: Returns the current time in epoch seconds

    Example:
        >>> cache = CacheStore(CacheSettings(ttl=3600), SQLiteKeyValueStore("cache.db"))
        >>> await cache.load()
        >>> await cache.insert("B0001", {"title": "Widget"})
        >>> await cache.lookup("B0001")
        {'title': 'Widget'}
    """

    def __init__(
        self,
        settings: CacheSettings | None = None,
        store: KeyValueStoreProtocol | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or CacheSettings()
        self._store: KeyValueStoreProtocol = store or MemoryKeyValueStore()
        self._clock = clock

        self._entries: dict[str, CacheEntry] = {}
        # key -> inserted_at, kept in insertion order
        self._index: dict[str, float] = {}

        self._hits = 0
        self._misses = 0
        self._last_cleanup_at: float | None = None

        self._write_lock = asyncio.Lock()

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    def update_settings(self, settings: CacheSettings) -> None:
        """Swap the cache settings; the next lookup or insert uses them."""
        self._settings = settings

    async def load(self) -> int:
        """Rehydrate entries and index from the durable store.

        Index records whose entry is missing or malformed are dropped, and
        entries that already expired are purged.

        Returns:
            Number of live entries loaded
        """
        try:
            raw_index = await self._store.get(StorageKeys.INDEX_KEY)
        except Exception as e:  # noqa: BLE001
            self._log_durable_failure(e, "cache_load", None, ErrorCode.CACHE_READ_FAILED)
            return 0

        self._entries.clear()
        self._index.clear()

        if not isinstance(raw_index, list):
            if raw_index is not None:
                logger.warning("Ignoring malformed cache index of type %s", type(raw_index).__name__)
            return 0

        now = self._clock()
        stale_keys: list[str] = []
        dirty = False

        for raw_record in raw_index:
            record = self._parse_index_record(raw_record)
            if record is None:
                dirty = True
                continue

            try:
                raw_entry = await self._store.get(StorageKeys.entry_key(record.key))
            except Exception as e:  # noqa: BLE001
                self._log_durable_failure(e, "cache_load", record.key, ErrorCode.CACHE_READ_FAILED)
                dirty = True
                continue

            entry = CacheEntry.from_record(record.key, raw_entry)
            if entry is None:
                logger.debug("Dropping index record without a valid entry: %s", record.key)
                dirty = True
                continue

            if self._is_expired(entry.inserted_at, now):
                stale_keys.append(record.key)
                dirty = True
                continue

            self._entries[record.key] = entry
            self._index.pop(record.key, None)
            self._index[record.key] = entry.inserted_at

        if dirty:
            index_snapshot = self._index_snapshot()
            await self._write(
                "cache_load",
                None,
                lambda: self._delete_and_save_index(stale_keys, index_snapshot),
            )

        logger.info(
            "Loaded %d cache entries (%d expired purged)",
            len(self._entries),
            len(stale_keys),
        )
        return len(self._entries)

    async def lookup(self, key: str) -> Any | None:
        """Return the cached value for ``key``, or None on a miss.

        An entry is expired once ``now - inserted_at >= ttl``; expired
        entries are removed and counted as misses.
        """
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        now = self._clock()
        if self._is_expired(entry.inserted_at, now):
            self._forget(key)
            self._misses += 1
            logger.debug("Cache entry expired: %s", key)
            index_snapshot = self._index_snapshot()
            await self._write(
                "cache_expire",
                key,
                lambda: self._delete_and_save_index([key], index_snapshot),
            )
            return None

        entry.last_accessed_at = now
        self._hits += 1
        return copy.deepcopy(entry.value)

    async def insert(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, evicting the oldest entries first if needed.

        Re-inserting a key replaces its value and moves it to the newest
        position of the eviction index.
        """
        evicted = self._evict_if_needed()

        now = self._clock()
        entry = CacheEntry(
            key=key,
            value=copy.deepcopy(value),
            inserted_at=now,
            last_accessed_at=now,
        )
        self._entries[key] = entry
        self._index.pop(key, None)
        self._index[key] = now

        record = entry.to_record()
        index_snapshot = self._index_snapshot()

        async def persist() -> None:
            for evicted_key in evicted:
                await self._store.delete(StorageKeys.entry_key(evicted_key))
            await self._store.set(StorageKeys.entry_key(key), record)
            await self._store.set(StorageKeys.INDEX_KEY, index_snapshot)

        await self._write("cache_insert", key, persist)

    async def remove(self, key: str) -> None:
        """Delete ``key`` if present; absent keys are ignored."""
        if key not in self._entries:
            return
        self._forget(key)
        index_snapshot = self._index_snapshot()
        await self._write(
            "cache_remove",
            key,
            lambda: self._delete_and_save_index([key], index_snapshot),
        )

    async def clear(self) -> None:
        """Delete every entry and reset the statistics."""
        keys = list(self._entries)
        self._entries.clear()
        self._index.clear()
        self._hits = 0
        self._misses = 0
        self._last_cleanup_at = None

        await self._write(
            "cache_clear",
            None,
            lambda: self._delete_and_save_index(keys, []),
        )
        logger.info("Cache cleared (%d entries removed)", len(keys))

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            live_entries=len(self._entries),
            max_entries=self._settings.max_entries,
            last_cleanup_at=self._last_cleanup_at,
        )

    def keys(self) -> list[str]:
        """Live keys, oldest insert first."""
        return list(self._index)

    def index(self) -> list[IndexRecord]:
        return [IndexRecord(key=key, inserted_at=ts) for key, ts in self._index.items()]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _is_expired(self, inserted_at: float, now: float) -> bool:
        return now - inserted_at >= self._settings.ttl

    def _forget(self, key: str) -> None:
        self._entries.pop(key, None)
        self._index.pop(key, None)

    def _evict_if_needed(self) -> list[str]:
        live = len(self._entries)
        threshold = self._settings.max_entries * self._settings.cleanup_threshold
        if live == 0 or live < threshold:
            return []

        remove_count = math.ceil(live * self._settings.cleanup_ratio)
        oldest = sorted(self._index.items(), key=lambda item: item[1])[:remove_count]
        evicted = [key for key, _ in oldest]
        for key in evicted:
            self._forget(key)

        self._last_cleanup_at = self._clock()
        logger.info(
            "Cache cleanup removed %d of %d entries",
            len(evicted),
            live,
        )
        return evicted

    def _index_snapshot(self) -> list[dict[str, Any]]:
        return [
            IndexRecord(key=key, inserted_at=ts).to_record()
            for key, ts in self._index.items()
        ]

    @staticmethod
    def _parse_index_record(raw: Any) -> IndexRecord | None:
        if not isinstance(raw, dict):
            return None
        key = raw.get(StorageKeys.FIELD_KEY)
        inserted_at = raw.get(StorageKeys.FIELD_INSERTED_AT)
        if not isinstance(key, str) or not isinstance(inserted_at, (int, float)):
            return None
        return IndexRecord(key=key, inserted_at=float(inserted_at))

    async def _delete_and_save_index(
        self,
        keys: list[str],
        index_snapshot: list[dict[str, Any]],
    ) -> None:
        for key in keys:
            await self._store.delete(StorageKeys.entry_key(key))
        await self._store.set(StorageKeys.INDEX_KEY, index_snapshot)

    async def _write(
        self,
        operation: str,
        key: str | None,
        action: Callable[[], Awaitable[None]],
    ) -> None:
        """Run a durable write after every earlier one; failures are only logged."""
        async with self._write_lock:
            try:
                await action()
            except Exception as e:  # noqa: BLE001
                self._log_durable_failure(e, operation, key, ErrorCode.CACHE_WRITE_FAILED)

    @staticmethod
    def _log_durable_failure(
        error: Exception,
        operation: str,
        key: str | None,
        code: ErrorCode,
    ) -> None:
        if isinstance(error, DocVaultError):
            wrapped = error
        else:
            wrapped = create_cache_error(
                code,
                f"Durable store operation failed: {error!s}",
                key=key,
                operation=operation,
                original_error=error,
            )
        log_operation_error(
            logger=logger,
            error=wrapped,
            operation=operation,
            level=logging.WARNING,
        )


__all__ = ["CacheEntry", "CacheStats", "CacheStore", "IndexRecord"]
