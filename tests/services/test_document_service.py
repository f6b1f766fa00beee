"""Tests for the caller-facing document service."""

from __future__ import annotations

import orjson
import pytest
import pytest_asyncio
import toml

from docvault.config import LoggingSettings, Settings, StorageSettings, get_config
from docvault.services.document_service import DocumentService, build_store
from docvault.services.kv_store import MemoryKeyValueStore, SQLiteKeyValueStore
from docvault.shared.errors import ApplicationError, ErrorCode, FetchFailure, TransportError
from docvault.shared.constants import RecordMetadata
from docvault.shared.types import ErrorKind, TransportErrorKind


@pytest_asyncio.fixture
async def service(settings, transport, parser, store, clock):
    service = await DocumentService.create(settings, transport, parser, store, clock)
    yield service
    await service.close()


class TestResolve:
    @pytest.mark.asyncio
    async def test_resolve_and_stats(self, service, transport):
        # When
        first = await service.resolve("B0001")
        second = await service.resolve("B0001")

        # Then
        assert first == second
        assert len(transport.calls) == 1
        stats = service.get_stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.live_entries == 1

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, service, transport):
        await service.resolve("B0001")

        await service.invalidate("B0001")
        await service.resolve("B0001")

        assert len(transport.calls) == 2

    @pytest.mark.asyncio
    async def test_clear_all(self, service):
        await service.resolve("A")
        await service.resolve("B")

        await service.clear_all()

        assert service.get_stats().live_entries == 0
        assert service.get_stats().misses == 0

    @pytest.mark.asyncio
    async def test_queue_stats(self, service):
        assert service.queue_stats() == {
            "active_count": 0,
            "queued": 0,
            "in_flight": 0,
            "max_concurrent": 3,
        }

    @pytest.mark.asyncio
    async def test_loads_durable_cache_on_create(self, settings, transport, parser, store, clock):
        # Given: an entry written by an earlier service
        first = await DocumentService.create(settings, transport, parser, store, clock)
        await first.resolve("B0001")
        await first.close()

        # When
        second = await DocumentService.create(settings, transport, parser, store, clock)
        await second.resolve("B0001")

        # Then
        assert len(transport.calls) == 1
        await second.close()


class TestErrorLog:
    @pytest.mark.asyncio
    async def test_failures_are_journaled(self, service, transport):
        transport.script(
            "B0001",
            TransportError(TransportErrorKind.HTTP_STATUS, "HTTP error (404)", status_code=404),
        )

        with pytest.raises(FetchFailure) as exc_info:
            await service.resolve("B0001")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        entries = service.get_error_log()
        assert [(entry.key, entry.kind) for entry in entries] == [("B0001", "not_found")]
        assert orjson.loads(service.export_error_log())[0]["key"] == "B0001"

        service.clear_error_log()
        assert service.get_error_log() == []

    @pytest.mark.asyncio
    async def test_locale_applies_to_user_message(self, service, transport):
        service.update_settings({"locale": "zh"})
        transport.script(
            "B0001",
            TransportError(TransportErrorKind.HTTP_STATUS, "HTTP error (404)", status_code=404),
        )

        with pytest.raises(FetchFailure) as exc_info:
            await service.resolve("B0001")

        assert exc_info.value.user_message == "产品信息不可用"


class TestUpdateSettings:
    """Partial settings updates are validated before they take effect."""

    @pytest.mark.asyncio
    async def test_update_applies_to_components(self, service):
        updated = service.update_settings({"ttl": 60, "max_concurrent": 5})

        assert updated.cache.ttl == 60
        assert updated.fetch.max_concurrent == 5
        assert service.cache.settings.ttl == 60
        assert service.orchestrator.settings.max_concurrent == 5
        assert service.settings is updated

    @pytest.mark.asyncio
    async def test_camel_case_alias(self, service):
        service.update_settings({"maxEntries": 42, "baseRetryDelay": 0.5})

        assert service.settings.cache.max_entries == 42
        assert service.settings.fetch.base_retry_delay == 0.5

    @pytest.mark.asyncio
    async def test_unknown_setting_rejected(self, service):
        with pytest.raises(ApplicationError) as exc_info:
            service.update_settings({"color": "blue"})

        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR
        assert "color" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_value_leaves_settings_untouched(self, service):
        before = service.settings

        with pytest.raises(ApplicationError) as exc_info:
            service.update_settings({"ttl": 60, "max_concurrent": 0})

        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR
        assert exc_info.value.message.startswith("Invalid settings")
        assert service.settings is before
        assert service.cache.settings.ttl == 3600

    @pytest.mark.asyncio
    async def test_error_log_size_resizes_journal(self, service):
        service.update_settings({"errorLogSize": 5})

        assert service.orchestrator.journal.max_size == 5

    @pytest.mark.asyncio
    async def test_persist_writes_config(self, service, tmp_path):
        path = tmp_path / "config" / "config.toml"

        service.update_settings({"max_retries": 4}, persist=True, config_path=path)

        assert toml.load(path)["fetch"]["max_retries"] == 4

    @pytest.mark.asyncio
    async def test_persist_saves_own_sections(self, settings, transport, parser, store, tmp_path):
        # Given: a service whose storage and logging differ from the global config
        own = settings.model_copy(
            update={
                "storage": StorageSettings(backend="memory"),
                "logging": LoggingSettings(level="DEBUG"),
            },
        )
        service = await DocumentService.create(own, transport, parser, store)
        path = tmp_path / "config" / "config.toml"

        # When
        service.update_settings({"ttl": 120}, persist=True, config_path=path)

        # Then
        saved = toml.load(path)
        assert saved["storage"]["backend"] == "memory"
        assert saved["logging"]["level"] == "DEBUG"
        assert saved["cache"]["ttl"] == 120
        assert saved["fetch"]["max_concurrent"] == 3
        assert get_config().storage.backend == "memory"
        await service.close()


class TestRequestMetrics:
    @pytest.mark.asyncio
    async def test_metrics_exposed_and_reset(self, service, transport):
        transport.script(
            "B0002",
            TransportError(TransportErrorKind.HTTP_STATUS, "HTTP error (404)", status_code=404),
        )
        await service.resolve("B0001")
        await service.resolve("B0001")
        with pytest.raises(FetchFailure):
            await service.resolve("B0002")

        summary = service.get_request_metrics()
        assert summary.total_requests == 3
        assert summary.cache_served == 1
        assert summary.fetched == 2
        assert summary.failed == 1

        service.reset_request_metrics()
        assert service.get_request_metrics().total_requests == 0

    @pytest.mark.asyncio
    async def test_resolved_record_carries_metadata(self, service):
        record = await service.resolve("B0001")

        assert record[RecordMetadata.FIELD][RecordMetadata.SOURCE] == "https://docs.test/items/B0001"


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_closes(self, settings, transport, parser, store):
        async with await DocumentService.create(settings, transport, parser, store) as service:
            await service.resolve("B0001")

        with pytest.raises(ApplicationError):
            await service.resolve("B0002")

    @pytest.mark.asyncio
    async def test_create_builds_default_store(self, transport):
        service = await DocumentService.create(Settings(), transport=transport)
        try:
            assert service.get_stats().live_entries == 0
        finally:
            await service.close()

    def test_build_store_memory(self):
        assert isinstance(build_store(StorageSettings(backend="memory")), MemoryKeyValueStore)

    def test_build_store_sqlite(self, tmp_path):
        store = build_store(StorageSettings(backend="sqlite", db_path=str(tmp_path / "kv.db")))
        try:
            assert isinstance(store, SQLiteKeyValueStore)
        finally:
            store.close()
