"""
CLI Constants

Command names, help texts and exit codes of the ``docvault`` command.
"""


class CLIDefaults:
    """CLI default values."""

    VERSION = "0.1.0"
    EXIT_SUCCESS = 0
    EXIT_ERROR = 1
    EXIT_FETCH_FAILED = 2
    EXIT_INTERRUPTED = 130


class CLICommands:
    """CLI command names."""

    RESOLVE = "resolve"
    STATS = "stats"
    INVALIDATE = "invalidate"
    CLEAR = "clear"
    CONFIG_SHOW = "config-show"


class CLIHelp:
    """CLI help texts."""

    APP_NAME = "docvault"
    APP_DESCRIPTION = "Fetch, parse and cache remote documents."
    VERSION_TEXT = "DocVault v{version}"

    RESOLVE_KEY_HELP = "Document key to resolve"
    RESOLVE_URL_HELP = "Explicit locator instead of the configured template"
    INVALIDATE_KEY_HELP = "Document key to drop from the cache"
    JSON_HELP = "Output results in JSON format"
    LOG_LEVEL_HELP = "Logging level (DEBUG, INFO, WARNING, ERROR)"
    VERSION_HELP = "Show version and exit"
