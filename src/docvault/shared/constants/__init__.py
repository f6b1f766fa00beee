"""
DocVault Constants Module

This module provides centralized constants for DocVault. All magic values
and configuration defaults are defined here to ensure consistency across
the codebase.
"""

from .cache import BASE_DAY, BASE_HOUR, BASE_MINUTE, BASE_SECOND, CacheDefaults, RecordMetadata, StorageKeys
from .cli import CLICommands, CLIDefaults, CLIHelp
from .messages import TechnicalMessages, UserMessages
from .network import FetchDefaults, MetricsDefaults, PayloadLimits

__all__ = [
    "BASE_DAY",
    "BASE_HOUR",
    "BASE_MINUTE",
    "BASE_SECOND",
    "CLICommands",
    "CLIDefaults",
    "CLIHelp",
    "CacheDefaults",
    "FetchDefaults",
    "MetricsDefaults",
    "PayloadLimits",
    "RecordMetadata",
    "StorageKeys",
    "TechnicalMessages",
    "UserMessages",
]
