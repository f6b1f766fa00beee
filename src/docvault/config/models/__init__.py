"""Configuration domain models.

This module provides centralized access to all configuration models.
"""

from __future__ import annotations

from .app_settings import AppSettings, LoggingSettings
from .cache_settings import CacheSettings, StorageSettings
from .fetch_settings import FetchSettings
from .settings import Settings

__all__ = [
    "AppSettings",
    "CacheSettings",
    "FetchSettings",
    "LoggingSettings",
    "Settings",
    "StorageSettings",
]
