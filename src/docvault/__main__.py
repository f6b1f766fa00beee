"""
DocVault Package Main Entry Point

Runs the CLI when the package is executed with ``python -m docvault``.
"""

import logging
import sys

from docvault.cli.error_handler import handle_cli_error
from docvault.cli.typer_app import app
from docvault.shared.constants import CLIDefaults

logger = logging.getLogger(__name__)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        logger.info("Command interrupted by user")
        sys.exit(CLIDefaults.EXIT_INTERRUPTED)
    except SystemExit:
        raise
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, "docvault-main")
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
