"""Collaborator protocols for dependency inversion.

The fetch engine only talks to its transport, parser and durable store
through these interfaces, so reference implementations can be swapped for
test doubles or other backends.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TransportProtocol(Protocol):
    """Byte-level request/response exchange.

    Example:
        >>> transport: TransportProtocol = AiohttpTransport()
        >>> payload = await transport.fetch("https://example.com/dp/B0001", 10.0)
    """

    async def fetch(self, locator: str, deadline: float) -> str:
        """Fetch the raw payload behind a locator.

        Args:
            locator: Remote locator (usually a URL)
            deadline: Seconds the transport may spend on this call

        Returns:
            Raw payload text

        Raises:
            TransportError: Tagged with the failure kind
        """


@runtime_checkable
class ParserProtocol(Protocol):
    """Turns raw payloads into structured records."""

    @property
    def field_names(self) -> tuple[str, ...]:
        """Fields attempted one by one during graceful degradation."""

    def parse_full(self, payload: str, key: str) -> dict[str, Any]:
        """Parse a complete record.

        Raises:
            ParseError: On structural failure
        """

    def parse_field(self, payload: str, field_name: str) -> Any | None:
        """Best-effort extraction of a single field. Never raises."""


@runtime_checkable
class KeyValueStoreProtocol(Protocol):
    """Asynchronous durable key-value store; may fail transiently."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...
