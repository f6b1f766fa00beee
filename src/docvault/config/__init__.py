"""Configuration package for DocVault.

This package provides configuration management including:
- Settings models for each configuration domain
- TOML and environment loading
- Thread-safe singleton access
"""

from __future__ import annotations

from .loader import (
    SettingsLoader,
    get_config,
    load_settings,
    reload_config,
    reset_config,
    update_and_save_config,
)
from .models import (
    AppSettings,
    CacheSettings,
    FetchSettings,
    LoggingSettings,
    Settings,
    StorageSettings,
)

__all__ = [
    "AppSettings",
    "CacheSettings",
    "FetchSettings",
    "LoggingSettings",
    "Settings",
    "SettingsLoader",
    "StorageSettings",
    "get_config",
    "load_settings",
    "reload_config",
    "reset_config",
    "update_and_save_config",
]
