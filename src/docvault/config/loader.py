"""Settings loader and singleton manager.

This module handles:
- Environment variable loading from an optional .env file
- Configuration file loading from TOML
- Thread-safe singleton pattern for the Settings instance
- Configuration update and save operations
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv

from docvault.config.models.settings import Settings
from docvault.shared.errors import ApplicationError, ErrorCode, ErrorContext

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/config.toml")


class SettingsLoader:
    """Thread-safe singleton manager for Settings.

    Uses double-checked locking pattern to ensure thread-safety
    while minimizing lock overhead.
    """

    _instance: Settings | None = None
    _lock: threading.RLock = threading.RLock()

    def get_config(self) -> Settings:
        """Get the global settings instance, loading it if necessary."""
        # First check (without lock for performance)
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = load_settings()

        return self._instance

    def reload_config(self) -> Settings:
        """Reload the global settings instance from configuration files."""
        with self._lock:
            self._instance = load_settings()

        return self._instance

    def update_and_save_config(
        self,
        updater: Callable[[Settings], None],
        config_path: Path | str = DEFAULT_CONFIG_PATH,
    ) -> Settings:
        """Update configuration, validate, save to file, and swap the global instance.

        The updater works on a deep copy, so the current instance is left
        untouched when validation or saving fails.

        Args:
            updater: Callable that modifies a Settings object in-place
            config_path: Path to save the configuration file

        Returns:
            The validated, saved Settings instance

        Raises:
            ApplicationError: If validation fails or save operation fails
        """
        config_path = Path(config_path)

        with self._lock:
            try:
                current = self.get_config()
                updated = current.model_copy(deep=True)
                updater(updated)

                # Assignment does not validate, so re-validate the dump
                updated = Settings.model_validate(updated.model_dump())

                updated.to_toml_file(config_path)
                self._instance = updated

                logger.info("Configuration updated and saved successfully to %s", config_path)

            except Exception as e:
                logger.exception("Failed to update and save configuration")
                raise ApplicationError(
                    code=ErrorCode.CONFIGURATION_ERROR,
                    message=f"Configuration update failed: {e}",
                    context=ErrorContext(
                        operation="update_and_save_config",
                        additional_data={"config_path": str(config_path)},
                    ),
                    original_error=e,
                ) from e

        return updated

    def reset(self) -> None:
        """Forget the cached instance so the next access reloads."""
        with self._lock:
            self._instance = None


def _load_env_file(env_file: Path = Path(".env")) -> None:
    """Load environment variables from a .env file when one exists."""
    if env_file.exists():
        load_dotenv(env_file, override=True)
        logger.debug("Loaded environment from %s", env_file)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from TOML configuration file or environment.

    Args:
        config_path: Optional path to TOML configuration file. If None, tries
            the default locations and falls back to environment variables.

    Returns:
        Settings instance loaded from the specified source

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
    """
    _load_env_file()

    if config_path:
        return Settings.from_toml_file(config_path)

    default_config_paths = [
        DEFAULT_CONFIG_PATH,
        Path("config.toml"),
    ]

    for candidate in default_config_paths:
        if candidate.exists():
            return Settings.from_toml_file(candidate)

    return Settings()


# Global loader instance
_loader = SettingsLoader()


def get_config() -> Settings:
    """Get the global settings instance (thread-safe)."""
    return _loader.get_config()


def reload_config() -> Settings:
    """Reload the global settings instance from configuration files."""
    return _loader.reload_config()


def update_and_save_config(
    updater: Callable[[Settings], None],
    config_path: Path | str = DEFAULT_CONFIG_PATH,
) -> Settings:
    """Update configuration, validate, save to file, and swap the global instance."""
    return _loader.update_and_save_config(updater, config_path)


def reset_config() -> None:
    """Drop the cached global settings instance."""
    _loader.reset()
