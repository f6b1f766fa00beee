"""DocVault Error Handling Module

This module defines the error handling system for DocVault, providing
structured error classes with context information and user-friendly messages.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- User-friendly Messages: Fetch failures carry a message safe to display
- Proper Exception Chaining: Original exceptions are preserved
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

from docvault.shared.types import ErrorKind, TransportErrorKind

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]

# Default keys to mask in safe_dict
SAFE_DICT_MASK_KEYS: tuple[str, ...] = ("locator",)


class ErrorCode(str, Enum):
    """Error codes for DocVault.

    This enum serves as the single source of truth for all error codes
    used throughout the application.
    """

    # Transport Errors
    TRANSPORT_TIMEOUT = "TRANSPORT_TIMEOUT"
    TRANSPORT_CONNECTION_ERROR = "TRANSPORT_CONNECTION_ERROR"
    TRANSPORT_BLOCKED = "TRANSPORT_BLOCKED"
    TRANSPORT_HTTP_ERROR = "TRANSPORT_HTTP_ERROR"
    TRANSPORT_INVALID_RESPONSE = "TRANSPORT_INVALID_RESPONSE"

    # Fetch Errors
    FETCH_FAILED = "FETCH_FAILED"

    # Parsing Errors
    PARSING_ERROR = "PARSING_ERROR"

    # Cache Errors
    CACHE_ERROR = "CACHE_ERROR"
    CACHE_READ_FAILED = "CACHE_READ_FAILED"
    CACHE_WRITE_FAILED = "CACHE_WRITE_FAILED"
    CACHE_CORRUPTED = "CACHE_CORRUPTED"
    CACHE_SERIALIZATION_ERROR = "CACHE_SERIALIZATION_ERROR"

    # Configuration Errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Application Errors
    APPLICATION_ERROR = "APPLICATION_ERROR"
    CLI_UNEXPECTED_ERROR = "CLI_UNEXPECTED_ERROR"


_TRANSPORT_ERROR_CODES: dict[TransportErrorKind, ErrorCode] = {
    TransportErrorKind.TIMEOUT: ErrorCode.TRANSPORT_TIMEOUT,
    TransportErrorKind.CONNECTION: ErrorCode.TRANSPORT_CONNECTION_ERROR,
    TransportErrorKind.BLOCKED: ErrorCode.TRANSPORT_BLOCKED,
    TransportErrorKind.HTTP_STATUS: ErrorCode.TRANSPORT_HTTP_ERROR,
    TransportErrorKind.INVALID_RESPONSE: ErrorCode.TRANSPORT_INVALID_RESPONSE,
}


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types.

    Args:
        value: Input dictionary or None

    Returns:
        Dictionary with primitive values only, or None

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContext:
    """Context information for errors.

    Only primitive types (str, int, float, bool) are allowed in
    additional_data to ensure safe serialization.

    Attributes:
        operation: Optional operation name that caused the error
        key: Optional document key the error relates to
        locator: Optional remote locator (masked in safe_dict)
        additional_data: Optional dict with primitive values only
    """

    operation: str | None = None
    key: str | None = None
    locator: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        """Post-initialization validation and coercion."""
        if self.additional_data is not None:
            coerced = _coerce_primitives(self.additional_data)
            object.__setattr__(self, "additional_data", coerced)

    def safe_dict(self, *, mask_keys: tuple[str, ...] | None = None) -> dict[str, Any]:
        """Export context as dict with masking.

        Args:
            mask_keys: Fields to exclude from output. Defaults to SAFE_DICT_MASK_KEYS.

        Returns:
            Dictionary with masked fields and guaranteed additional_data key.

        Example:
            >>> context = ErrorContext(operation="resolve", locator="https://x")
            >>> context.safe_dict()
            {'operation': 'resolve', 'additional_data': {}}
        """
        if mask_keys is None:
            mask_keys = SAFE_DICT_MASK_KEYS

        data: dict[str, Any] = {}
        if self.operation is not None and "operation" not in mask_keys:
            data["operation"] = self.operation
        if self.key is not None and "key" not in mask_keys:
            data["key"] = self.key
        if self.locator is not None and "locator" not in mask_keys:
            data["locator"] = self.locator

        if self.additional_data is not None and "additional_data" not in mask_keys:
            data["additional_data"] = self.additional_data
        else:
            data["additional_data"] = {}

        return data


class DocVaultError(Exception):
    """Base exception class for all DocVault errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize DocVaultError.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            context: Additional context information
            original_error: Original exception that caused this error
        """
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error

        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation of the error with code, message,
            masked context, and original_error (if present)
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class DomainError(DocVaultError):
    """Domain-specific errors.

    These errors occur when document content or business rules are
    violated, e.g. a payload that cannot be parsed into a record.
    """


class InfrastructureError(DocVaultError):
    """Infrastructure-related errors.

    These errors occur when interacting with external systems
    like the network or the durable key-value store.
    """


class ApplicationError(DocVaultError):
    """Application-level errors.

    These errors occur at the application layer, typically
    related to configuration, arguments, or application flow.
    """


class TransportError(InfrastructureError):
    """Failure raised by a transport collaborator.

    The ``kind`` tag is what the classifier inspects; the message text is
    for diagnostics only.
    """

    def __init__(
        self,
        kind: TransportErrorKind,
        message: str,
        status_code: int | None = None,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(_TRANSPORT_ERROR_CODES[kind], message, context, original_error)
        self.kind = kind
        self.status_code = status_code


class ParseError(DomainError):
    """Structural failure while turning a payload into a record."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(ErrorCode.PARSING_ERROR, message, context, original_error)


class FetchFailure(InfrastructureError):
    """Terminal outcome of a resolution that could not produce a record.

    Raised to every caller waiting on the key once retries are exhausted
    or the error is not recoverable.

    Attributes:
        kind: Classified failure kind
        user_message: Message safe to display to end users
        technical_message: Diagnostic message
        attempts: Number of transport attempts made
        recoverable: Whether the last failure was classified recoverable
        partial_data: Fields recovered by graceful degradation, if any
    """

    def __init__(
        self,
        kind: ErrorKind,
        user_message: str,
        technical_message: str,
        attempts: int,
        *,
        recoverable: bool = False,
        partial_data: dict[str, Any] | None = None,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(ErrorCode.FETCH_FAILED, technical_message, context, original_error)
        self.kind = kind
        self.user_message = user_message
        self.technical_message = technical_message
        self.attempts = attempts
        self.recoverable = recoverable
        self.partial_data = partial_data

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "kind": self.kind.value,
                "user_message": self.user_message,
                "technical_message": self.technical_message,
                "attempts": self.attempts,
                "recoverable": self.recoverable,
                "partial_data": self.partial_data,
            },
        )
        return data


def create_validation_error(
    message: str,
    field: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> ApplicationError:
    """Create a validation error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"field": field} if field else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return ApplicationError(
        ErrorCode.VALIDATION_ERROR,
        message,
        context,
        original_error,
    )


def create_cache_error(
    code: ErrorCode,
    message: str,
    key: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> InfrastructureError:
    """Create a cache (durable store) error with context."""
    context = ErrorContext(
        operation=operation,
        key=key,
    )
    return InfrastructureError(
        code,
        message,
        context,
        original_error,
    )


class CliError(ApplicationError):
    """CLI-specific error with an exit code."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        command: str | None = None,
        exit_code: int = 1,
    ):
        super().__init__(code, message, context, original_error)
        self.command = command
        self.exit_code = exit_code


def create_cli_error(
    message: str,
    command: str,
    original_error: Exception | None = None,
    exit_code: int = 1,
) -> CliError:
    """Create a CLI error for an unexpected failure in a command."""
    return CliError(
        ErrorCode.CLI_UNEXPECTED_ERROR,
        message,
        ErrorContext(operation=command),
        original_error,
        command=command,
        exit_code=exit_code,
    )
