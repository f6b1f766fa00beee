"""Application and logging configuration models.

This module contains configuration models for application-level
settings and logging configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from docvault.shared.constants import UserMessages


class AppSettings(BaseModel):
    """Application configuration.

    Manages the display locale for user-facing failure messages and the
    size of the in-memory error journal.
    """

    name: str = Field(default="DocVault", description="Application name")
    locale: str = Field(
        default=UserMessages.DEFAULT_LOCALE,
        description="Locale of user-facing error messages (en, zh)",
    )
    error_log_size: int = Field(
        default=100,
        gt=0,
        description="Maximum number of entries kept in the error journal",
    )


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    file: str | None = Field(default=None, description="Optional JSON log file path")
    use_rich_console: bool = Field(default=True, description="Use Rich console output")


__all__ = [
    "AppSettings",
    "LoggingSettings",
]
