"""Bounded journal of recent fetch failures."""

from __future__ import annotations

from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

import orjson

from docvault.services.error_classifier import ErrorClassification

DEFAULT_JOURNAL_SIZE = 100


@dataclass(frozen=True)
class JournalEntry:
    """One recorded failure.

    Attributes:
        timestamp: ISO-8601 UTC time the failure was recorded
        key: Document key being resolved
        attempt: Zero-based attempt number that failed
        kind: Classified failure kind value
        recoverable: Whether the failure was classified recoverable
        technical_message: Diagnostic message
        user_message: Localized user-facing message
    """

    timestamp: str
    key: str
    attempt: int
    kind: str
    recoverable: bool
    technical_message: str
    user_message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ErrorJournal:
    """Keeps the most recent failures, oldest dropped first.

    Example:
        >>> journal = ErrorJournal(max_size=2)
        >>> journal.record(classification, "B0001", 0)
        >>> journal.export_json()
    """

    def __init__(self, max_size: int = DEFAULT_JOURNAL_SIZE) -> None:
        if max_size <= 0:
            msg = f"max_size must be positive, got {max_size}"
            raise ValueError(msg)
        self._entries: deque[JournalEntry] = deque(maxlen=max_size)

    @property
    def max_size(self) -> int:
        return self._entries.maxlen or DEFAULT_JOURNAL_SIZE

    def resize(self, max_size: int) -> None:
        """Change the capacity, keeping the newest entries."""
        if max_size <= 0:
            msg = f"max_size must be positive, got {max_size}"
            raise ValueError(msg)
        self._entries = deque(self._entries, maxlen=max_size)

    def record(self, classification: ErrorClassification, key: str, attempt: int) -> JournalEntry:
        entry = JournalEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            key=key,
            attempt=attempt,
            kind=classification.kind.value,
            recoverable=classification.recoverable,
            technical_message=classification.technical_message,
            user_message=classification.user_message,
        )
        self._entries.append(entry)
        return entry

    def entries(self) -> list[JournalEntry]:
        """Recorded entries, oldest first."""
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def export_json(self) -> str:
        """Serialize the journal as an indented JSON array."""
        return orjson.dumps(
            [entry.to_dict() for entry in self._entries],
            option=orjson.OPT_INDENT_2,
        ).decode("utf-8")

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["DEFAULT_JOURNAL_SIZE", "ErrorJournal", "JournalEntry"]
