"""JSON record parser.

Parses JSON documents into records with orjson. When a payload is
malformed, individual fields can still be pulled out of the raw text with
:meth:`JsonRecordParser.parse_field`, which the fetch orchestrator uses to
attach partial data to parse failures.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import orjson

from docvault.shared.errors import ErrorContext, ParseError

logger = logging.getLogger(__name__)

DEFAULT_FIELDS: tuple[str, ...] = ("title", "brand", "bsr", "sales_data", "variants")

_SCALAR_PATTERN = re.compile(
    r'"(?:[^"\\]|\\.)*"|-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?|true|false|null',
)
_CLOSERS = {"{": "}", "[": "]"}


class JsonRecordParser:
    """Turns JSON object payloads into record dicts.

    Args:
        fields: Fields tried one by one during partial extraction
        required_fields: Fields a record must contain to parse fully

    Example:
        >>> parser = JsonRecordParser(required_fields=("title",))
        >>> parser.parse_full('{"title": "Widget"}', "B0001")
        {'title': 'Widget', 'key': 'B0001'}
    """

    def __init__(
        self,
        fields: tuple[str, ...] = DEFAULT_FIELDS,
        required_fields: tuple[str, ...] = (),
    ) -> None:
        self._fields = tuple(fields)
        self._required_fields = tuple(required_fields)

    @property
    def field_names(self) -> tuple[str, ...]:
        return self._fields

    def parse_full(self, payload: str, key: str) -> dict[str, Any]:
        """Parse a complete record.

        Raises:
            ParseError: If the payload is not a JSON object or lacks a
                required field
        """
        context = ErrorContext(operation="parse_full", key=key)
        try:
            data = orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON: {e}", context=context, original_error=e) from e

        if not isinstance(data, dict):
            msg = f"Expected a JSON object, got {type(data).__name__}"
            raise ParseError(msg, context=context)

        missing = [name for name in self._required_fields if data.get(name) is None]
        if missing:
            raise ParseError(f"Missing required fields: {', '.join(missing)}", context=context)

        data.setdefault("key", key)
        return data

    def parse_field(self, payload: str, field_name: str) -> Any | None:
        """Extract one field from a possibly malformed payload, None if not found."""
        try:
            data = orjson.loads(payload)
        except orjson.JSONDecodeError:
            return self._scan_field(payload, field_name)
        if isinstance(data, dict):
            return data.get(field_name)
        return None

    def _scan_field(self, payload: str, field_name: str) -> Any | None:
        marker = re.compile(r'"%s"\s*:\s*' % re.escape(field_name))
        for match in marker.finditer(payload):
            value = self._decode_value_at(payload, match.end())
            if value is not None:
                return value
        return None

    def _decode_value_at(self, payload: str, start: int) -> Any | None:
        if start >= len(payload):
            return None

        opener = payload[start]
        if opener in _CLOSERS:
            end = _find_container_end(payload, start)
            if end is None:
                return None
            fragment = payload[start:end]
        else:
            scalar = _SCALAR_PATTERN.match(payload, start)
            if scalar is None:
                return None
            fragment = scalar.group(0)

        try:
            return orjson.loads(fragment)
        except orjson.JSONDecodeError:
            logger.debug("Could not decode field fragment: %.40s", fragment)
            return None


def _find_container_end(payload: str, start: int) -> int | None:
    """Index just past the bracket that closes the one at ``start``."""
    stack = [_CLOSERS[payload[start]]]
    in_string = False
    escaped = False
    for index in range(start + 1, len(payload)):
        char = payload[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("}", "]"):
            if char != stack.pop():
                return None
            if not stack:
                return index + 1
    return None


__all__ = ["DEFAULT_FIELDS", "JsonRecordParser"]
