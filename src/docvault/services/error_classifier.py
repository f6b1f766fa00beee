"""Failure classification and backoff policy.

Maps any failure raised during a fetch attempt onto an
:class:`ErrorClassification` that tells the orchestrator whether to retry
and how long to wait. Classification only inspects explicit signals
(exception types and transport kind tags), never message text.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import aiohttp

from docvault.shared.constants import TechnicalMessages, UserMessages
from docvault.shared.errors import ParseError, TransportError
from docvault.shared.types import BackoffStrategy, ErrorKind, TransportErrorKind

HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_SERVER_ERROR_MIN = 500
HTTP_SERVER_ERROR_MAX = 599


@dataclass(frozen=True)
class ErrorClassification:
    """Outcome of classifying one failure.

    Attributes:
        kind: Failure category
        recoverable: Whether another attempt may succeed
        backoff_strategy: How the retry delay grows
        user_message: Localized message safe to show to end users
        technical_message: Diagnostic message
    """

    kind: ErrorKind
    recoverable: bool
    backoff_strategy: BackoffStrategy
    user_message: str
    technical_message: str

    @property
    def should_retry(self) -> bool:
        return self.recoverable and self.backoff_strategy is not BackoffStrategy.NONE


# kind -> (recoverable, backoff strategy)
_POLICY: dict[ErrorKind, tuple[bool, BackoffStrategy]] = {
    ErrorKind.TIMEOUT: (True, BackoffStrategy.EXPONENTIAL),
    ErrorKind.CONNECTION: (True, BackoffStrategy.LINEAR),
    ErrorKind.BLOCKED: (False, BackoffStrategy.NONE),
    ErrorKind.NOT_FOUND: (False, BackoffStrategy.NONE),
    ErrorKind.FORBIDDEN: (False, BackoffStrategy.NONE),
    ErrorKind.RATE_LIMITED: (True, BackoffStrategy.EXPONENTIAL),
    ErrorKind.SERVER_ERROR: (True, BackoffStrategy.LINEAR),
    ErrorKind.PARSING: (True, BackoffStrategy.LINEAR),
    ErrorKind.UNKNOWN: (True, BackoffStrategy.EXPONENTIAL),
}


def _classify_status(status_code: int | None) -> tuple[ErrorKind, str]:
    if status_code == HTTP_NOT_FOUND:
        return ErrorKind.NOT_FOUND, TechnicalMessages.NOT_FOUND
    if status_code == HTTP_FORBIDDEN:
        return ErrorKind.FORBIDDEN, TechnicalMessages.FORBIDDEN
    if status_code == HTTP_TOO_MANY_REQUESTS:
        return ErrorKind.RATE_LIMITED, TechnicalMessages.RATE_LIMITED
    if status_code is not None and HTTP_SERVER_ERROR_MIN <= status_code <= HTTP_SERVER_ERROR_MAX:
        return ErrorKind.SERVER_ERROR, TechnicalMessages.SERVER_ERROR.format(status_code=status_code)
    return ErrorKind.UNKNOWN, TechnicalMessages.HTTP_ERROR.format(status_code=status_code)


def _classify_transport_error(error: TransportError) -> tuple[ErrorKind, str]:
    if error.kind is TransportErrorKind.TIMEOUT:
        return ErrorKind.TIMEOUT, error.message or TechnicalMessages.TIMEOUT
    if error.kind is TransportErrorKind.CONNECTION:
        return ErrorKind.CONNECTION, error.message
    if error.kind is TransportErrorKind.BLOCKED:
        return ErrorKind.BLOCKED, error.message or TechnicalMessages.BLOCKED
    if error.kind is TransportErrorKind.HTTP_STATUS:
        return _classify_status(error.status_code)
    return ErrorKind.UNKNOWN, error.message


def _classify_signal(error: BaseException) -> tuple[ErrorKind, str]:
    if isinstance(error, TransportError):
        return _classify_transport_error(error)
    if isinstance(error, ParseError):
        return ErrorKind.PARSING, TechnicalMessages.PARSING.format(error=error.message)
    # asyncio.TimeoutError is an alias of TimeoutError from Python 3.11 on
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT, str(error) or TechnicalMessages.TIMEOUT
    if isinstance(error, (ConnectionError, aiohttp.ClientConnectionError, OSError)):
        return ErrorKind.CONNECTION, TechnicalMessages.CONNECTION.format(error=error)
    return ErrorKind.UNKNOWN, TechnicalMessages.UNKNOWN.format(error=error)


def classify_error(error: BaseException, locale: str | None = None) -> ErrorClassification:
    """Classify a failure into kind, recoverability and backoff strategy.

    Args:
        error: The exception raised by the transport, parser or attempt wrapper
        locale: Locale of the user message (defaults to English)

    Returns:
        The classification for this failure

    Example:
        >>> classify_error(TransportError(TransportErrorKind.HTTP_STATUS, "", 429)).kind
        <ErrorKind.RATE_LIMITED: 'rate_limited'>
    """
    kind, technical_message = _classify_signal(error)
    recoverable, strategy = _POLICY[kind]
    return ErrorClassification(
        kind=kind,
        recoverable=recoverable,
        backoff_strategy=strategy,
        user_message=UserMessages.for_kind(kind, locale),
        technical_message=technical_message,
    )


def compute_backoff_delay(strategy: BackoffStrategy, attempt: int, base: float) -> float | None:
    """Delay before the next attempt, or None when no retry should happen.

    Args:
        strategy: Backoff strategy of the classified failure
        attempt: Zero-based number of the attempt that just failed
        base: Base retry delay in seconds

    Returns:
        ``base * 2**attempt`` for exponential, ``base * (attempt + 1)`` for
        linear, None for none
    """
    if strategy is BackoffStrategy.EXPONENTIAL:
        return base * (2**attempt)
    if strategy is BackoffStrategy.LINEAR:
        return base * (attempt + 1)
    return None


__all__ = ["ErrorClassification", "classify_error", "compute_backoff_delay"]
