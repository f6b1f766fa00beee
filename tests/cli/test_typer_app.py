"""Tests for the docvault command line."""

from __future__ import annotations

import asyncio

import orjson
import pytest
from typer.testing import CliRunner

from docvault.cli import typer_app
from docvault.cli.typer_app import app
from docvault.config import get_config
from docvault.services.document_service import DocumentService
from docvault.services.kv_store import MemoryKeyValueStore
from docvault.shared.constants import RecordMetadata
from docvault.shared.errors import TransportError
from docvault.shared.types import TransportErrorKind

real_open_service = typer_app.open_service


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def shared_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture(autouse=True)
def fake_service(mocker, settings, transport, parser, shared_store):
    """Every command gets a service over the scripted transport and one shared store."""

    async def open_service() -> DocumentService:
        return await DocumentService.create(settings, transport, parser, shared_store)

    return mocker.patch("docvault.cli.typer_app.open_service", open_service)


def invoke(runner: CliRunner, *args: str, log_level: str = "ERROR"):
    return runner.invoke(app, ["--log-level", log_level, *args])


def json_body(output: str) -> dict:
    return orjson.loads(output[output.index("{") :])


class TestResolveCommand:
    def test_table_output(self, runner):
        result = invoke(runner, "resolve", "B0001")

        assert result.exit_code == 0
        assert "Item B0001" in result.stdout
        assert "Acme" in result.stdout

    def test_json_output(self, runner):
        result = invoke(runner, "resolve", "B0001", "--json")

        assert result.exit_code == 0
        body = json_body(result.stdout)
        assert body["success"] is True
        assert body["command"] == "resolve"
        data = body["data"]
        assert data.pop(RecordMetadata.FIELD)[RecordMetadata.SOURCE] == "https://docs.test/items/B0001"
        assert data == {"title": "Item B0001", "brand": "Acme", "key": "B0001"}

    def test_explicit_url(self, runner, transport):
        result = invoke(runner, "resolve", "B0001", "--url", "https://mirror.test/raw/B0001")

        assert result.exit_code == 0
        assert transport.calls[0][0] == "https://mirror.test/raw/B0001"

    def test_cache_shared_between_invocations(self, runner, transport):
        invoke(runner, "resolve", "B0001")
        invoke(runner, "resolve", "B0001")

        assert len(transport.calls) == 1

    def test_fetch_failure_exit_code(self, runner, transport):
        transport.script(
            "B0001",
            TransportError(TransportErrorKind.HTTP_STATUS, "HTTP error (404)", status_code=404),
        )

        result = invoke(runner, "resolve", "B0001")

        assert result.exit_code == 2
        assert "The requested document is not available" in result.output

    def test_fetch_failure_json(self, runner, transport):
        transport.script(
            "B0001",
            TransportError(TransportErrorKind.HTTP_STATUS, "HTTP error (404)", status_code=404),
        )

        result = invoke(runner, "resolve", "B0001", "--json", log_level="CRITICAL")

        assert result.exit_code == 2
        body = json_body(result.stdout)
        assert body["success"] is False
        assert body["data"]["kind"] == "not_found"
        assert body["errors"] == ["The requested document is not available"]

    def test_empty_key_is_application_error(self, runner):
        result = invoke(runner, "resolve", " ", log_level="CRITICAL")

        assert result.exit_code == 1
        assert "Application error" in result.output


class TestCacheCommands:
    def test_stats_json(self, runner):
        invoke(runner, "resolve", "B0001")

        result = invoke(runner, "stats", "--json")

        assert result.exit_code == 0
        data = json_body(result.stdout)["data"]
        assert data["live_entries"] == 1
        assert data["max_entries"] == 10

    def test_stats_table(self, runner):
        result = invoke(runner, "stats")

        assert result.exit_code == 0
        assert "Cache Statistics" in result.stdout
        assert "Never" in result.stdout

    def test_invalidate(self, runner, transport):
        invoke(runner, "resolve", "B0001")

        result = invoke(runner, "invalidate", "B0001", "--json")
        invoke(runner, "resolve", "B0001")

        assert result.exit_code == 0
        assert json_body(result.stdout)["data"] == {"key": "B0001"}
        assert len(transport.calls) == 2

    def test_clear(self, runner, shared_store):
        invoke(runner, "resolve", "A")
        invoke(runner, "resolve", "B")

        result = invoke(runner, "clear")

        assert result.exit_code == 0
        assert "Cache cleared" in result.stdout
        assert shared_store._data == {"cacheIndex": []}


class TestDefaultDurableCache:
    """With default settings the cache survives between separate runs."""

    @pytest.fixture
    def default_service(self, mocker):
        return mocker.patch("docvault.cli.typer_app.open_service", real_open_service)

    def test_entries_visible_to_later_runs(self, runner, transport, default_service, tmp_path):
        # Given: an earlier process resolved a key with default settings
        async def fill() -> None:
            async with await DocumentService.create(get_config(), transport=transport) as service:
                await service.resolve("B0001")

        asyncio.run(fill())
        assert (tmp_path / get_config().storage.db_path).exists()

        # When / Then: each CLI run opens the same durable cache
        stats = invoke(runner, "stats", "--json")
        assert stats.exit_code == 0
        assert json_body(stats.stdout)["data"]["live_entries"] == 1

        assert invoke(runner, "invalidate", "B0001").exit_code == 0
        stats = invoke(runner, "stats", "--json")
        assert json_body(stats.stdout)["data"]["live_entries"] == 0


class TestMiscCommands:
    def test_version(self, runner):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "DocVault v0.1.0" in result.stdout

    def test_config_show(self, runner):
        result = invoke(runner, "config-show")

        assert result.exit_code == 0
        config = json_body(result.stdout)
        assert config["fetch"]["max_concurrent"] == 3
        assert config["storage"]["backend"] == "sqlite"
