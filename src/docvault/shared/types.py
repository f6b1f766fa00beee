"""Shared enumerations for DocVault.

These enums are used by the error hierarchy, the error classifier and the
transport collaborators, so they live below all of them.
"""

from __future__ import annotations

from enum import Enum


class TransportErrorKind(str, Enum):
    """Failure categories a transport must distinguish."""

    TIMEOUT = "timeout"
    CONNECTION = "connection"
    BLOCKED = "blocked"
    HTTP_STATUS = "http_status"
    INVALID_RESPONSE = "invalid_response"


class ErrorKind(str, Enum):
    """Classified failure kinds used for retry decisions."""

    TIMEOUT = "timeout"
    CONNECTION = "connection"
    BLOCKED = "blocked"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    PARSING = "parsing"
    UNKNOWN = "unknown"


class BackoffStrategy(str, Enum):
    """Delay growth between retry attempts."""

    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    NONE = "none"


__all__ = ["BackoffStrategy", "ErrorKind", "TransportErrorKind"]
