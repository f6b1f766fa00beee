"""DocVault Shared Module.

This package contains shared constants, types, protocols, logging and
error handling used across DocVault.
"""

__all__ = ["constants", "errors", "logging", "protocols", "types"]
