"""
CLI Error Handling Utilities

Maps exceptions raised by commands onto exit codes and prints them in the
requested output format.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from docvault.cli.json_formatter import format_json_output
from docvault.shared.constants import CLIDefaults
from docvault.shared.errors import (
    ApplicationError,
    CliError,
    FetchFailure,
    InfrastructureError,
    create_cli_error,
)

logger = logging.getLogger(__name__)


def handle_cli_error(
    error: Exception,
    command: str,
    *,
    json_output: bool = False,
) -> int:
    """Handle CLI errors with consistent formatting and logging.

    Args:
        error: The exception that occurred
        command: The CLI command being executed
        json_output: Whether to output JSON format

    Returns:
        Exit code for the CLI command
    """
    error_context: dict[str, Any] = {
        "command": command,
        "error_type": type(error).__name__,
        "json_output": json_output,
    }
    cli_error = _map_error_to_cli_error(error, command, error_context)

    if isinstance(error, FetchFailure):
        # Already logged by the orchestrator
        logger.debug("Fetch failed in %s: %s", command, error.message, extra={"context": error_context})
    else:
        logger.error(
            "CLI error in %s: %s",
            command,
            cli_error.message,
            extra={"context": error_context},
            exc_info=error,
        )

    if json_output:
        data = error.to_dict() if isinstance(error, FetchFailure) else None
        sys.stdout.write(
            format_json_output(False, command, data=data, errors=[cli_error.message]).decode("utf-8") + "\n",
        )
    else:
        sys.stderr.write(f"Error: {cli_error.message}\n")

    return cli_error.exit_code


def _map_error_to_cli_error(
    error: Exception,
    command: str,
    error_context: dict[str, Any],
) -> CliError:
    """Map specific exception types to CLI errors."""
    if isinstance(error, CliError):
        error_context["error_code"] = error.code.value
        return error

    if isinstance(error, FetchFailure):
        error_context["error_code"] = error.code.value
        error_context["kind"] = error.kind.value
        return create_cli_error(
            message=error.user_message,
            command=command,
            original_error=error,
            exit_code=CLIDefaults.EXIT_FETCH_FAILED,
        )

    if isinstance(error, ApplicationError):
        error_context["error_code"] = error.code.value
        return create_cli_error(
            message=f"Application error: {error.message}",
            command=command,
            original_error=error,
        )

    if isinstance(error, InfrastructureError):
        error_context["error_code"] = error.code.value
        return create_cli_error(
            message=f"Infrastructure error: {error.message}",
            command=command,
            original_error=error,
        )

    error_context["error_category"] = "unexpected"
    return create_cli_error(
        message=f"Unexpected error: {error}",
        command=command,
        original_error=error,
    )
