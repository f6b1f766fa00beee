"""
Pytest configuration and shared fixtures for DocVault tests.

This module provides the test doubles (scripted transport, failing store,
manual clock) and the settings used across the test modules.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

import orjson
import pytest

from docvault.config import CacheSettings, FetchSettings, Settings, reset_config
from docvault.config.models import AppSettings
from docvault.parsers import JsonRecordParser
from docvault.services.cache_store import CacheStore
from docvault.services.error_journal import ErrorJournal
from docvault.services.fetch_orchestrator import FetchOrchestrator
from docvault.services.kv_store import MemoryKeyValueStore

LOCATOR_TEMPLATE = "https://docs.test/items/{key}"

# Outcome that makes the scripted transport wait until cancelled
HANG = object()


class ManualClock:
    """Clock whose time only moves when told to."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedTransport:
    """Transport double returning scripted outcomes per key.

    Each key has a list of outcomes consumed in order (payload strings,
    exceptions or ``HANG``); once exhausted the default JSON payload is
    returned. ``gate`` holds every call until it is set.
    """

    def __init__(self) -> None:
        self.scripts: dict[str, list[Any]] = {}
        self.calls: list[tuple[str, float]] = []
        self.active = 0
        self.max_active = 0
        self.gate: asyncio.Event | None = None

    def script(self, key: str, *outcomes: Any) -> None:
        self.scripts.setdefault(key, []).extend(outcomes)

    def hold(self) -> asyncio.Event:
        self.gate = asyncio.Event()
        return self.gate

    @staticmethod
    def key_of(locator: str) -> str:
        return locator.rsplit("/", 1)[-1]

    @staticmethod
    def default_payload(key: str) -> str:
        return orjson.dumps({"title": f"Item {key}", "brand": "Acme"}).decode("utf-8")

    def keys_called(self) -> list[str]:
        return [self.key_of(locator) for locator, _ in self.calls]

    def deadlines_for(self, key: str) -> list[float]:
        return [deadline for locator, deadline in self.calls if self.key_of(locator) == key]

    async def fetch(self, locator: str, deadline: float) -> str:
        self.calls.append((locator, deadline))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            key = self.key_of(locator)
            outcomes = self.scripts.get(key)
            outcome = outcomes.pop(0) if outcomes else self.default_payload(key)
            if outcome is HANG:
                await asyncio.Event().wait()
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            self.active -= 1


class FlakyStore(MemoryKeyValueStore):
    """In-memory store whose operations can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key: str) -> Any | None:
        if self.fail_reads:
            raise OSError("disk unavailable")
        return await super().get(key)

    async def set(self, key: str, value: Any) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        await super().set(key, value)

    async def delete(self, key: str) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        await super().delete(key)


async def settle(rounds: int = 10) -> None:
    """Let scheduled callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Run each test in its own directory with fresh global settings and logger."""
    monkeypatch.chdir(tmp_path)
    for name in ("DOCVAULT_CACHE__TTL", "DOCVAULT_FETCH__MAX_CONCURRENT", "DOCVAULT_APP__LOCALE"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()
    docvault_logger = logging.getLogger("docvault")
    for handler in list(docvault_logger.handlers):
        docvault_logger.removeHandler(handler)
        handler.close()
    docvault_logger.propagate = True
    docvault_logger.setLevel(logging.NOTSET)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def parser() -> JsonRecordParser:
    return JsonRecordParser()


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def cache_settings() -> CacheSettings:
    return CacheSettings(ttl=3600, max_entries=10, cleanup_threshold=0.9, cleanup_ratio=0.3)


@pytest.fixture
def fetch_settings() -> FetchSettings:
    """Fast settings: no retry delay, deadlines 10/15/20s."""
    return FetchSettings(
        max_concurrent=3,
        max_retries=2,
        base_retry_delay=0.0,
        base_timeout=10.0,
        timeout_step=5.0,
        hard_timeout=20.0,
        locator_template=LOCATOR_TEMPLATE,
    )


@pytest.fixture
def settings(cache_settings: CacheSettings, fetch_settings: FetchSettings) -> Settings:
    return Settings(app=AppSettings(), cache=cache_settings, fetch=fetch_settings)


@pytest.fixture
def cache(cache_settings: CacheSettings, store: FlakyStore, clock: ManualClock) -> CacheStore:
    return CacheStore(cache_settings, store, clock=clock)


@pytest.fixture
def journal() -> ErrorJournal:
    return ErrorJournal(max_size=100)


@pytest.fixture
def orchestrator(
    cache: CacheStore,
    transport: ScriptedTransport,
    parser: JsonRecordParser,
    fetch_settings: FetchSettings,
    journal: ErrorJournal,
) -> FetchOrchestrator:
    return FetchOrchestrator(cache, transport, parser, fetch_settings, journal)


@pytest.fixture
def hang() -> object:
    """Outcome that keeps a scripted fetch pending until cancelled."""
    return HANG


@pytest.fixture(name="settle")
def settle_fixture():
    return settle
