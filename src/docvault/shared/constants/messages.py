"""
Error Message Constants

User-facing messages are localized and keyed by classified error kind;
technical messages are English only.
"""

from __future__ import annotations

from docvault.shared.types import ErrorKind


class UserMessages:
    """Localized messages that are safe to show to end users."""

    DEFAULT_LOCALE = "en"

    MESSAGES: dict[str, dict[ErrorKind, str]] = {
        "en": {
            ErrorKind.TIMEOUT: "The request timed out, please try again later",
            ErrorKind.CONNECTION: "Network connection error, please check your connection",
            ErrorKind.BLOCKED: "Access is temporarily restricted, please try again later",
            ErrorKind.NOT_FOUND: "The requested document is not available",
            ErrorKind.FORBIDDEN: "Access was denied, please try again later",
            ErrorKind.RATE_LIMITED: "Too many requests, please try again later",
            ErrorKind.SERVER_ERROR: "The server reported an error, please try again later",
            ErrorKind.PARSING: "The document could not be fully read, some details may be missing",
            ErrorKind.UNKNOWN: "Network error, please try again later",
        },
        "zh": {
            ErrorKind.TIMEOUT: "请求超时，请稍后再试",
            ErrorKind.CONNECTION: "网络连接错误，请检查您的网络连接",
            ErrorKind.BLOCKED: "访问受限，请稍后再试",
            ErrorKind.NOT_FOUND: "产品信息不可用",
            ErrorKind.FORBIDDEN: "访问被拒绝，请稍后再试",
            ErrorKind.RATE_LIMITED: "请求过于频繁，请稍后再试",
            ErrorKind.SERVER_ERROR: "服务器错误，请稍后再试",
            ErrorKind.PARSING: "数据解析错误，部分信息可能不可用",
            ErrorKind.UNKNOWN: "网络错误，请稍后再试",
        },
    }

    @classmethod
    def for_kind(cls, kind: ErrorKind, locale: str | None = None) -> str:
        table = cls.MESSAGES.get(locale or cls.DEFAULT_LOCALE, cls.MESSAGES[cls.DEFAULT_LOCALE])
        return table[kind]


class TechnicalMessages:
    """Diagnostic message templates."""

    TIMEOUT = "Request timed out"
    HARD_TIMEOUT = "Attempt exceeded hard timeout of {timeout}s"
    CONNECTION = "Network connection error: {error}"
    BLOCKED = "Access blocked, challenge page detected"
    NOT_FOUND = "Document not found (404)"
    FORBIDDEN = "Access forbidden (403)"
    RATE_LIMITED = "Rate limited (429)"
    SERVER_ERROR = "Server error ({status_code})"
    HTTP_ERROR = "HTTP error ({status_code})"
    PARSING = "Error parsing payload: {error}"
    UNKNOWN = "Unexpected failure: {error}"
    EMPTY_RESPONSE = "Empty response received"
    RESPONSE_TOO_SMALL = "Response too small ({size} chars), likely not a valid document"
