"""
DocVault Typer CLI Application

Command-line front end over :class:`DocumentService`. The cache lives in
the configured durable store; with the default sqlite backend repeated
invocations share it.
"""

from __future__ import annotations

import asyncio
from typing import Any

import orjson
import typer
from rich.console import Console
from rich.table import Table

from docvault.cli.error_handler import handle_cli_error
from docvault.cli.json_formatter import format_json_output
from docvault.config import get_config
from docvault.services.document_service import DocumentService
from docvault.shared.constants import CLICommands, CLIDefaults, CLIHelp
from docvault.shared.logging import setup_structured_logger

__version__ = CLIDefaults.VERSION

console = Console()

app = typer.Typer(
    name=CLIHelp.APP_NAME,
    help=CLIHelp.APP_DESCRIPTION,
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


async def open_service() -> DocumentService:
    """Build the service used by every command."""
    return await DocumentService.create(get_config())


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(CLIHelp.VERSION_TEXT.format(version=__version__))
        raise typer.Exit


@app.callback()
def main(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help=CLIHelp.LOG_LEVEL_HELP,
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help=CLIHelp.VERSION_HELP,
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Fetch, parse and cache remote documents."""
    settings = get_config()
    setup_structured_logger(
        level=log_level or settings.logging.level,
        log_file=settings.logging.file,
        use_rich_console=settings.logging.use_rich_console,
    )


def _emit_json(command: str, data: Any) -> None:
    typer.echo(format_json_output(True, command, data=data).decode("utf-8"))


def _run(command: str, json_output: bool, coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, command, json_output=json_output)
        raise typer.Exit(exit_code) from e


@app.command(CLICommands.RESOLVE)
def resolve_command(
    key: str = typer.Argument(..., help=CLIHelp.RESOLVE_KEY_HELP),
    url: str | None = typer.Option(None, "--url", help=CLIHelp.RESOLVE_URL_HELP),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    """
    Resolve a document by key, from cache when possible.

    Examples:
        docvault resolve B0001
        docvault resolve B0001 --url https://example.com/items/B0001.json --json
    """

    async def run() -> Any:
        async with await open_service() as service:
            return await service.resolve(key, url)

    record = _run(CLICommands.RESOLVE, json_output, run())

    if json_output:
        _emit_json(CLICommands.RESOLVE, record)
        return

    table = Table(title=f"Document {key}", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    if isinstance(record, dict):
        for field_name, value in record.items():
            rendered = value if isinstance(value, str) else orjson.dumps(value, default=str).decode("utf-8")
            table.add_row(str(field_name), rendered)
    else:
        table.add_row("value", str(record))
    console.print(table)


@app.command(CLICommands.STATS)
def stats_command(
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    """Show cache statistics."""

    async def run() -> dict[str, Any]:
        async with await open_service() as service:
            return service.get_stats().to_dict()

    stats = _run(CLICommands.STATS, json_output, run())

    if json_output:
        _emit_json(CLICommands.STATS, stats)
        return

    table = Table(title="Cache Statistics", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Live Entries", str(stats["live_entries"]))
    table.add_row("Max Entries", str(stats["max_entries"]))
    table.add_row("Usage", f"{stats['usage']:.1%}")
    table.add_row("Hit Ratio", f"{stats['hit_ratio']:.1%}")
    table.add_row("Last Cleanup", str(stats["last_cleanup_at"] or "Never"))
    console.print(table)


@app.command(CLICommands.INVALIDATE)
def invalidate_command(
    key: str = typer.Argument(..., help=CLIHelp.INVALIDATE_KEY_HELP),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    """Drop one document from the cache."""

    async def run() -> None:
        async with await open_service() as service:
            await service.invalidate(key)

    _run(CLICommands.INVALIDATE, json_output, run())

    if json_output:
        _emit_json(CLICommands.INVALIDATE, {"key": key})
    else:
        console.print(f"[green]Invalidated {key}[/green]")


@app.command(CLICommands.CLEAR)
def clear_command(
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    """Remove every cached document and reset statistics."""

    async def run() -> None:
        async with await open_service() as service:
            await service.clear_all()

    _run(CLICommands.CLEAR, json_output, run())

    if json_output:
        _emit_json(CLICommands.CLEAR, {"cleared": True})
    else:
        console.print("[green]Cache cleared successfully[/green]")


@app.command(CLICommands.CONFIG_SHOW)
def config_show_command() -> None:
    """Print the effective configuration as JSON."""
    settings = get_config()
    typer.echo(orjson.dumps(settings.model_dump(), option=orjson.OPT_INDENT_2).decode("utf-8"))
