"""Cache configuration models.

This module contains the cache store configuration (TTL, size ceiling and
eviction policy) and the durable storage backend selection.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from docvault.shared.constants import CacheDefaults


class CacheSettings(BaseModel):
    """Cache store configuration.

    Eviction runs before an insert once the number of live entries reaches
    ``max_entries * cleanup_threshold`` and removes the oldest
    ``ceil(live_entries * cleanup_ratio)`` entries by insertion time.
    """

    ttl: float = Field(
        default=CacheDefaults.TTL,
        gt=0,
        description="Cache time-to-live in seconds",
    )
    max_entries: int = Field(
        default=CacheDefaults.MAX_ENTRIES,
        gt=0,
        description="Maximum number of cached documents",
    )
    cleanup_threshold: float = Field(
        default=CacheDefaults.CLEANUP_THRESHOLD,
        gt=0,
        le=1,
        description="Fraction of max_entries that triggers eviction",
    )
    cleanup_ratio: float = Field(
        default=CacheDefaults.CLEANUP_RATIO,
        gt=0,
        le=1,
        description="Fraction of live entries removed per eviction",
    )


class StorageSettings(BaseModel):
    """Durable key-value store configuration."""

    backend: Literal["memory", "sqlite"] = Field(
        default=CacheDefaults.DEFAULT_BACKEND,
        description="Durable store backend (memory, sqlite)",
    )
    db_path: str = Field(
        default=CacheDefaults.DEFAULT_DB_PATH,
        description="SQLite database path (sqlite backend only)",
    )


__all__ = [
    "CacheSettings",
    "StorageSettings",
]
