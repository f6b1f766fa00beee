"""Tests for the durable key-value stores."""

from __future__ import annotations

import pytest

from docvault.services.kv_store import MemoryKeyValueStore, SQLiteKeyValueStore
from docvault.shared.errors import ErrorCode, InfrastructureError


@pytest.fixture
def sqlite_store(tmp_path):
    store = SQLiteKeyValueStore(tmp_path / "cache" / "docvault.db")
    yield store
    store.close()


class TestMemoryKeyValueStore:
    @pytest.mark.asyncio
    async def test_set_get_delete(self):
        store = MemoryKeyValueStore()

        await store.set("k", {"a": 1})
        assert await store.get("k") == {"a": 1}

        await store.delete("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        store = MemoryKeyValueStore()
        value = {"items": [1]}
        await store.set("k", value)

        value["items"].append(2)
        fetched = await store.get("k")
        fetched["items"].append(3)

        assert await store.get("k") == {"items": [1]}

    @pytest.mark.asyncio
    async def test_clear(self):
        store = MemoryKeyValueStore()
        await store.set("a", 1)
        await store.set("b", 2)

        await store.clear()

        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_delete_missing_key(self):
        store = MemoryKeyValueStore()

        await store.delete("missing")

        assert len(store) == 0


class TestSQLiteKeyValueStore:
    """SQLite store behavior against a real database file."""

    @pytest.mark.asyncio
    async def test_round_trip(self, sqlite_store):
        await sqlite_store.set("cache_B0001", {"value": {"title": "Widget"}, "inserted_at": 1.5})

        assert await sqlite_store.get("cache_B0001") == {
            "value": {"title": "Widget"},
            "inserted_at": 1.5,
        }

    @pytest.mark.asyncio
    async def test_missing_key(self, sqlite_store):
        assert await sqlite_store.get("missing") is None

    @pytest.mark.asyncio
    async def test_overwrite(self, sqlite_store):
        await sqlite_store.set("k", 1)
        await sqlite_store.set("k", 2)

        assert await sqlite_store.get("k") == 2

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, sqlite_store):
        await sqlite_store.set("a", 1)
        await sqlite_store.set("b", 2)

        await sqlite_store.delete("a")
        assert await sqlite_store.get("a") is None
        assert await sqlite_store.get("b") == 2

        await sqlite_store.clear()
        assert await sqlite_store.get("b") is None

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        db_path = tmp_path / "persist.db"
        first = SQLiteKeyValueStore(db_path)
        await first.set("cacheIndex", [{"key": "B0001", "inserted_at": 1.0}])
        first.close()

        second = SQLiteKeyValueStore(db_path)
        try:
            assert await second.get("cacheIndex") == [{"key": "B0001", "inserted_at": 1.0}]
        finally:
            second.close()

    @pytest.mark.asyncio
    async def test_in_memory_database(self):
        store = SQLiteKeyValueStore(":memory:")
        try:
            await store.set("k", "v")
            assert await store.get("k") == "v"
        finally:
            store.close()

    @pytest.mark.asyncio
    async def test_corrupted_value(self, sqlite_store):
        # Given: a row written outside the store
        sqlite_store.conn.execute(
            "INSERT INTO kv_store (key, value) VALUES (?, ?)",
            ("broken", b"{not json"),
        )

        # When / Then
        with pytest.raises(InfrastructureError) as exc_info:
            await sqlite_store.get("broken")
        assert exc_info.value.code == ErrorCode.CACHE_CORRUPTED
        assert exc_info.value.context.key == "broken"

    @pytest.mark.asyncio
    async def test_unserializable_value(self, sqlite_store):
        with pytest.raises(InfrastructureError) as exc_info:
            await sqlite_store.set("k", {"bad": object()})

        assert exc_info.value.code == ErrorCode.CACHE_SERIALIZATION_ERROR

    @pytest.mark.asyncio
    async def test_use_after_close(self, sqlite_store):
        sqlite_store.close()

        with pytest.raises(InfrastructureError) as exc_info:
            await sqlite_store.get("k")

        assert exc_info.value.code == ErrorCode.CACHE_ERROR

    def test_unopenable_path(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(InfrastructureError) as exc_info:
            SQLiteKeyValueStore(blocker / "sub" / "docvault.db")

        assert exc_info.value.code == ErrorCode.CACHE_ERROR
