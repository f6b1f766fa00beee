"""Caller-facing document service.

Wires settings, cache store, fetch orchestrator and error journal together
and exposes the operations callers use: resolve, invalidate, clear, cache
stats, request metrics, settings updates and the error log.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from types import TracebackType
from typing import Any, Callable

from pydantic import ValidationError

from docvault.config.loader import DEFAULT_CONFIG_PATH, get_config, update_and_save_config
from docvault.config.models import (
    AppSettings,
    CacheSettings,
    FetchSettings,
    Settings,
    StorageSettings,
)
from docvault.parsers.json_parser import JsonRecordParser
from docvault.services.cache_store import CacheStats, CacheStore
from docvault.services.error_journal import ErrorJournal, JournalEntry
from docvault.services.fetch_orchestrator import FetchOrchestrator
from docvault.services.kv_store import MemoryKeyValueStore, SQLiteKeyValueStore
from docvault.services.request_metrics import RequestMetrics, RequestMetricsSummary
from docvault.shared.constants import CacheDefaults
from docvault.shared.errors import create_validation_error
from docvault.shared.protocols import KeyValueStoreProtocol, ParserProtocol, TransportProtocol
from docvault.transports.http_transport import AiohttpTransport

logger = logging.getLogger(__name__)

# Flat setting name -> Settings section
_SETTING_SECTIONS: dict[str, str] = {
    "ttl": "cache",
    "max_entries": "cache",
    "cleanup_threshold": "cache",
    "cleanup_ratio": "cache",
    "max_concurrent": "fetch",
    "max_retries": "fetch",
    "base_retry_delay": "fetch",
    "base_timeout": "fetch",
    "timeout_step": "fetch",
    "hard_timeout": "fetch",
    "locator_template": "fetch",
    "locale": "app",
    "error_log_size": "app",
}

# camelCase spellings accepted for compatibility with stored settings payloads
_SETTING_ALIASES: dict[str, str] = {
    "maxEntries": "max_entries",
    "cleanupThreshold": "cleanup_threshold",
    "cleanupRatio": "cleanup_ratio",
    "maxConcurrent": "max_concurrent",
    "maxRetries": "max_retries",
    "baseRetryDelay": "base_retry_delay",
    "baseTimeout": "base_timeout",
    "timeoutStep": "timeout_step",
    "hardTimeout": "hard_timeout",
    "locatorTemplate": "locator_template",
    "errorLogSize": "error_log_size",
}


def build_store(storage: StorageSettings) -> KeyValueStoreProtocol:
    """Create the durable store selected by the storage settings."""
    if storage.backend == CacheDefaults.BACKEND_SQLITE:
        return SQLiteKeyValueStore(storage.db_path)
    return MemoryKeyValueStore()


class DocumentService:
    """Facade over the cache and fetch engine.

    Use :meth:`create` to build a service with its durable cache loaded.

    Example:
        >>> async with await DocumentService.create() as service:
        ...     record = await service.resolve("B0001")
        ...     print(service.get_stats().hit_ratio)
    """

    def __init__(
        self,
        settings: Settings,
        transport: TransportProtocol,
        parser: ParserProtocol,
        store: KeyValueStoreProtocol,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._settings = settings
        self._owned: list[Any] = []

        self._journal = ErrorJournal(max_size=settings.app.error_log_size)
        self._metrics = RequestMetrics(clock=clock)
        self._cache = CacheStore(settings.cache, store, clock=clock or time.time)
        self._orchestrator = FetchOrchestrator(
            cache=self._cache,
            transport=transport,
            parser=parser,
            settings=settings.fetch,
            journal=self._journal,
            locale=settings.app.locale,
            metrics=self._metrics,
        )

    @classmethod
    async def create(
        cls,
        settings: Settings | None = None,
        transport: TransportProtocol | None = None,
        parser: ParserProtocol | None = None,
        store: KeyValueStoreProtocol | None = None,
        clock: Callable[[], float] | None = None,
    ) -> DocumentService:
        """Build a service, creating default collaborators where none are given.

        The durable cache is loaded before the service is returned.
        """
        settings = settings or get_config()
        owned: list[Any] = []
        if store is None:
            store = build_store(settings.storage)
            owned.append(store)
        if transport is None:
            transport = AiohttpTransport()
            owned.append(transport)
        if parser is None:
            parser = JsonRecordParser()

        service = cls(settings, transport, parser, store, clock=clock)
        service._owned = owned
        await service._cache.load()
        return service

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def orchestrator(self) -> FetchOrchestrator:
        return self._orchestrator

    async def resolve(self, key: str, fetch_args: str | None = None) -> Any:
        """Return the record for ``key``.

        Raises:
            FetchFailure: If the document could not be fetched and parsed
        """
        return await self._orchestrator.resolve(key, fetch_args)

    async def invalidate(self, key: str) -> None:
        await self._cache.remove(key)

    async def clear_all(self) -> None:
        await self._cache.clear()

    def get_stats(self) -> CacheStats:
        return self._cache.stats()

    def queue_stats(self) -> dict[str, int]:
        return self._orchestrator.queue_stats()

    def get_request_metrics(self) -> RequestMetricsSummary:
        return self._metrics.summary()

    def reset_request_metrics(self) -> None:
        self._metrics.reset()

    def get_error_log(self) -> list[JournalEntry]:
        return self._journal.entries()

    def clear_error_log(self) -> None:
        self._journal.clear()

    def export_error_log(self) -> str:
        return self._journal.export_json()

    def update_settings(
        self,
        partial: dict[str, Any],
        *,
        persist: bool = False,
        config_path: Path | str = DEFAULT_CONFIG_PATH,
    ) -> Settings:
        """Validate and apply a partial settings update.

        Args:
            partial: Flat setting names mapped to new values
            persist: Also save the resulting settings to the TOML configuration file
            config_path: Configuration file used when persisting

        Returns:
            The settings now in effect

        Raises:
            ApplicationError: VALIDATION_ERROR for unknown names or invalid
                values, CONFIGURATION_ERROR if saving fails
        """
        sections: dict[str, dict[str, Any]] = {"app": {}, "cache": {}, "fetch": {}}
        for name, value in partial.items():
            field_name = _SETTING_ALIASES.get(name, name)
            section = _SETTING_SECTIONS.get(field_name)
            if section is None:
                raise create_validation_error(
                    f"Unknown setting: {name}",
                    field=name,
                    operation="update_settings",
                )
            sections[section][field_name] = value

        try:
            app = AppSettings.model_validate(
                {**self._settings.app.model_dump(), **sections["app"]},
            )
            cache = CacheSettings.model_validate(
                {**self._settings.cache.model_dump(), **sections["cache"]},
            )
            fetch = FetchSettings.model_validate(
                {**self._settings.fetch.model_dump(), **sections["fetch"]},
            )
        except ValidationError as e:
            raise create_validation_error(
                f"Invalid settings: {e.errors()[0]['msg']}",
                operation="update_settings",
                original_error=e,
            ) from e

        updated = self._settings.model_copy(
            update={"app": app, "cache": cache, "fetch": fetch},
        )
        if persist:

            def apply(target: Settings) -> None:
                target.app = updated.app
                target.logging = updated.logging
                target.cache = updated.cache
                target.storage = updated.storage
                target.fetch = updated.fetch

            update_and_save_config(apply, config_path)

        self._settings = updated
        self._cache.update_settings(cache)
        self._orchestrator.locale = app.locale
        self._journal.resize(app.error_log_size)
        self._orchestrator.update_settings(fetch)

        logger.info("Settings updated: %s", ", ".join(sorted(partial)))
        return self._settings

    async def close(self) -> None:
        """Cancel outstanding work and release owned collaborators."""
        await self._orchestrator.close()
        for resource in self._owned:
            if isinstance(resource, AiohttpTransport):
                await resource.close()
            elif isinstance(resource, SQLiteKeyValueStore):
                resource.close()
        self._owned = []

    async def __aenter__(self) -> DocumentService:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


__all__ = ["DocumentService", "build_store"]
