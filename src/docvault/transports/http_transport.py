"""aiohttp transport.

Fetches payloads over HTTP and reports every failure as a
:class:`TransportError` tagged with the kind the error classifier needs.
"""

from __future__ import annotations

import asyncio
import logging
import time

import aiohttp

from docvault.shared.constants import FetchDefaults, PayloadLimits, TechnicalMessages
from docvault.shared.errors import ErrorContext, TransportError
from docvault.shared.types import TransportErrorKind

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404


class AiohttpTransport:
    """HTTP GET transport backed by a lazily created ``aiohttp.ClientSession``.

    Args:
        session: Existing session to use (not closed by :meth:`close`)
        headers: Extra request headers merged over the defaults
        min_payload_chars: Reject shorter payloads as invalid responses
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        headers: dict[str, str] | None = None,
        min_payload_chars: int = 0,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._session_lock = asyncio.Lock()
        self._headers = {
            "User-Agent": FetchDefaults.USER_AGENT,
            "Accept": FetchDefaults.ACCEPT,
            "Accept-Language": FetchDefaults.ACCEPT_LANGUAGE,
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        if headers:
            self._headers.update(headers)
        self._min_payload_chars = min_payload_chars

    async def _get_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(headers=self._headers)
                self._owns_session = True
                logger.debug("aiohttp.ClientSession created")
            return self._session

    async def fetch(self, locator: str, deadline: float) -> str:
        """GET ``locator`` and return the body text.

        Args:
            locator: URL to fetch
            deadline: Total seconds allowed for the request

        Returns:
            Response body

        Raises:
            TransportError: TIMEOUT, CONNECTION, HTTP_STATUS, BLOCKED or
                INVALID_RESPONSE
        """
        context = ErrorContext(operation="http_fetch", locator=locator)
        session = await self._get_session()
        started = time.perf_counter()

        try:
            async with session.get(
                locator,
                timeout=aiohttp.ClientTimeout(total=deadline),
            ) as response:
                logger.debug(
                    "Fetch completed in %.0fms with status %d",
                    (time.perf_counter() - started) * 1000,
                    response.status,
                )
                if response.status >= 400:
                    raise TransportError(
                        TransportErrorKind.HTTP_STATUS,
                        TechnicalMessages.HTTP_ERROR.format(status_code=response.status),
                        status_code=response.status,
                        context=context,
                    )
                payload = await response.text()
                content_type = response.headers.get("Content-Type", "")
        except asyncio.TimeoutError as e:
            raise TransportError(
                TransportErrorKind.TIMEOUT,
                TechnicalMessages.TIMEOUT,
                context=context,
                original_error=e,
            ) from e
        except aiohttp.ClientConnectionError as e:
            raise TransportError(
                TransportErrorKind.CONNECTION,
                TechnicalMessages.CONNECTION.format(error=e),
                context=context,
                original_error=e,
            ) from e
        except (aiohttp.ClientPayloadError, UnicodeDecodeError) as e:
            raise TransportError(
                TransportErrorKind.INVALID_RESPONSE,
                f"Unreadable response body: {e}",
                context=context,
                original_error=e,
            ) from e
        except aiohttp.ClientError as e:
            raise TransportError(
                TransportErrorKind.CONNECTION,
                TechnicalMessages.CONNECTION.format(error=e),
                context=context,
                original_error=e,
            ) from e

        self._check_payload(payload, content_type, context)
        logger.debug("Fetched %d chars from %s", len(payload), locator)
        return payload

    def _check_payload(self, payload: str, content_type: str, context: ErrorContext) -> None:
        if not payload:
            raise TransportError(
                TransportErrorKind.INVALID_RESPONSE,
                TechnicalMessages.EMPTY_RESPONSE,
                context=context,
            )

        is_html = "html" in content_type.lower()
        min_chars = max(
            self._min_payload_chars,
            PayloadLimits.MIN_HTML_PAYLOAD_CHARS if is_html else 0,
        )
        if len(payload) < min_chars:
            raise TransportError(
                TransportErrorKind.INVALID_RESPONSE,
                TechnicalMessages.RESPONSE_TOO_SMALL.format(size=len(payload)),
                context=context,
            )

        lowered = payload.lower()
        if is_html and all(marker in lowered for marker in PayloadLimits.CHALLENGE_MARKERS):
            raise TransportError(
                TransportErrorKind.BLOCKED,
                TechnicalMessages.BLOCKED,
                context=context,
            )
        if any(marker in lowered for marker in PayloadLimits.NOT_FOUND_MARKERS):
            raise TransportError(
                TransportErrorKind.HTTP_STATUS,
                TechnicalMessages.NOT_FOUND,
                status_code=HTTP_NOT_FOUND,
                context=context,
            )

    async def close(self) -> None:
        """Close the session if this transport created it."""
        async with self._session_lock:
            if self._session is not None and self._owns_session and not self._session.closed:
                await self._session.close()
                logger.debug("aiohttp.ClientSession closed")
            self._session = None


__all__ = ["AiohttpTransport"]
