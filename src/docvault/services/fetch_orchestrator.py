"""Admission-controlled fetch orchestration.

The orchestrator turns ``resolve(key)`` calls into transport requests while
guaranteeing that:

- a cached document is returned without touching the network;
- concurrent requests for the same key share one outstanding fetch;
- at most ``max_concurrent`` transport calls run at any time, with further
  requests queued in FIFO order and retries placed at the head;
- recoverable failures are retried with the backoff chosen by the error
  classifier, and each retry gets a wider transport deadline.

All bookkeeping (active count, queue, in-flight table) is mutated only in
synchronous sections on the event loop, so ``_drain`` can be called from any
completion path without double-dispatching.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from docvault.config.models.fetch_settings import FetchSettings
from docvault.services.cache_store import CacheStore
from docvault.services.error_classifier import (
    ErrorClassification,
    classify_error,
    compute_backoff_delay,
)
from docvault.services.error_journal import ErrorJournal
from docvault.services.request_metrics import RequestMetrics
from docvault.shared.constants import RecordMetadata, TechnicalMessages
from docvault.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
    FetchFailure,
    ParseError,
    TransportError,
    create_validation_error,
)
from docvault.shared.logging import log_operation_error, log_operation_start, log_operation_success
from docvault.shared.protocols import ParserProtocol, TransportProtocol
from docvault.shared.types import ErrorKind, TransportErrorKind

logger = logging.getLogger(__name__)


@dataclass
class QueueItem:
    """A pending dispatch of ``key`` at the given zero-based attempt."""

    key: str
    attempt: int = 0


@dataclass
class InFlightRequest:
    """Bookkeeping for one key between admission and delivery."""

    key: str
    locator: str
    future: asyncio.Future[Any]
    attempt: int = 0
    waiters: int = 0
    started_at: float = field(default_factory=time.perf_counter)
    task: asyncio.Task[None] | None = None
    retry_handle: asyncio.TimerHandle | None = None
    partial_data: dict[str, Any] | None = None


class FetchOrchestrator:
    """Coordinates cache lookups, admission, retries and delivery.

    Args:
        cache: Cache consulted before and filled after each fetch
        transport: Fetches raw payloads
        parser: Turns payloads into records
        settings: Admission, retry and deadline settings
        journal: Receives every classified failure
        locale: Locale of user-facing failure messages
        metrics: Receives the timing of every finished resolution

    Example:
        >>> orchestrator = FetchOrchestrator(cache, AiohttpTransport(), JsonRecordParser())
        >>> record = await orchestrator.resolve("B0001")
    """

    def __init__(
        self,
        cache: CacheStore,
        transport: TransportProtocol,
        parser: ParserProtocol,
        settings: FetchSettings | None = None,
        journal: ErrorJournal | None = None,
        locale: str | None = None,
        metrics: RequestMetrics | None = None,
    ) -> None:
        self._cache = cache
        self._transport = transport
        self._parser = parser
        self._settings = settings or FetchSettings()
        self._journal = journal if journal is not None else ErrorJournal()
        self._metrics = metrics if metrics is not None else RequestMetrics()
        self.locale = locale

        self._active_count = 0
        self._queue: deque[QueueItem] = deque()
        self._in_flight: dict[str, InFlightRequest] = {}
        self._closed = False

    @property
    def settings(self) -> FetchSettings:
        return self._settings

    @property
    def journal(self) -> ErrorJournal:
        return self._journal

    @property
    def metrics(self) -> RequestMetrics:
        return self._metrics

    @property
    def active_count(self) -> int:
        return self._active_count

    def update_settings(self, settings: FetchSettings) -> None:
        """Swap settings; a higher ``max_concurrent`` admits queued work at once."""
        self._settings = settings
        self._drain()

    def queue_stats(self) -> dict[str, int]:
        return {
            "active_count": self._active_count,
            "queued": len(self._queue),
            "in_flight": len(self._in_flight),
            "max_concurrent": self._settings.max_concurrent,
        }

    async def resolve(self, key: str, fetch_args: str | None = None) -> Any:
        """Return the record for ``key`` from cache or by fetching it.

        Args:
            key: Document key
            fetch_args: Explicit locator; defaults to the configured template

        Returns:
            The parsed record

        Raises:
            FetchFailure: When retries are exhausted or the failure is not
                recoverable
            ApplicationError: If the key is empty or the orchestrator is closed
        """
        if not isinstance(key, str) or not key.strip():
            raise create_validation_error(
                "Document key must be a non-empty string",
                field="key",
                operation="resolve",
            )
        if self._closed:
            raise ApplicationError(
                ErrorCode.APPLICATION_ERROR,
                "Fetch orchestrator is closed",
                ErrorContext(operation="resolve", key=key),
            )

        started_at = time.perf_counter()
        cached = await self._cache.lookup(key)
        if cached is not None:
            logger.debug("Cache hit: %s", key)
            self._metrics.record(key, (time.perf_counter() - started_at) * 1000, from_cache=True)
            return cached

        request = self._in_flight.get(key)
        if request is None:
            locator = fetch_args or self._settings.build_locator(key)
            request = self._admit(key, locator)
        else:
            logger.debug("Joining in-flight request: %s", key)

        return await self._wait(request)

    async def close(self) -> None:
        """Cancel every outstanding resolution and reject new ones."""
        self._closed = True
        self._queue.clear()
        for request in list(self._in_flight.values()):
            self._cancel_request(request)
            if not request.future.done():
                request.future.cancel()
        logger.debug("Fetch orchestrator closed")

    def _admit(self, key: str, locator: str) -> InFlightRequest:
        loop = asyncio.get_running_loop()
        request = InFlightRequest(key=key, locator=locator, future=loop.create_future())
        self._in_flight[key] = request
        log_operation_start(logger, "resolve", {"key": key})

        if self._active_count < self._settings.max_concurrent:
            self._dispatch(request, 0)
        else:
            self._queue.append(QueueItem(key=key, attempt=0))
            logger.debug("Queued %s (%d waiting)", key, len(self._queue))
        return request

    async def _wait(self, request: InFlightRequest) -> Any:
        request.waiters += 1
        try:
            return await asyncio.shield(request.future)
        finally:
            request.waiters -= 1
            if request.waiters == 0 and not request.future.done():
                logger.debug("All callers cancelled, abandoning %s", request.key)
                self._cancel_request(request)
                request.future.cancel()

    def _dispatch(self, request: InFlightRequest, attempt: int) -> None:
        self._active_count += 1
        request.attempt = attempt
        task = asyncio.get_running_loop().create_task(self._run_attempt(request, attempt))
        request.task = task
        task.add_done_callback(lambda t: self._on_attempt_done(request, t))

    def _drain(self) -> None:
        while self._queue and self._active_count < self._settings.max_concurrent:
            item = self._queue.popleft()
            request = self._in_flight.get(item.key)
            if request is None or request.future.done():
                continue
            self._dispatch(request, item.attempt)

    def _release_slot(self) -> None:
        self._active_count -= 1

    async def _run_attempt(self, request: InFlightRequest, attempt: int) -> None:
        hard_timeout = self._settings.hard_timeout
        error: Exception | None = None
        record: Any = None
        try:
            record = await asyncio.wait_for(self._attempt(request, attempt), timeout=hard_timeout)
            record = self._attach_metadata(request, record, attempt)
            await self._cache.insert(request.key, record)
        except asyncio.TimeoutError as e:
            # _attempt converts transport timeouts, so this is the outer cap
            error = TransportError(
                TransportErrorKind.TIMEOUT,
                TechnicalMessages.HARD_TIMEOUT.format(timeout=hard_timeout),
                context=ErrorContext(operation="fetch_attempt", key=request.key),
                original_error=e,
            )
        except Exception as e:  # noqa: BLE001
            error = e

        self._release_slot()
        if error is None:
            self._complete(request, record)
        else:
            self._fail_or_retry(request, attempt, error)
        self._drain()

    async def _attempt(self, request: InFlightRequest, attempt: int) -> Any:
        deadline = self._settings.attempt_deadline(attempt)
        logger.debug(
            "Fetching %s (attempt %d, deadline %.1fs)",
            request.key,
            attempt + 1,
            deadline,
        )
        request.partial_data = None
        try:
            payload = await self._transport.fetch(request.locator, deadline)
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise TransportError(
                TransportErrorKind.TIMEOUT,
                TechnicalMessages.TIMEOUT,
                context=ErrorContext(operation="fetch_attempt", key=request.key),
                original_error=e,
            ) from e
        try:
            return self._parser.parse_full(payload, request.key)
        except ParseError:
            partial = self._extract_partial(payload)
            if partial:
                request.partial_data = partial
            raise

    def _extract_partial(self, payload: str) -> dict[str, Any]:
        partial: dict[str, Any] = {}
        for field_name in self._parser.field_names:
            try:
                value = self._parser.parse_field(payload, field_name)
            except Exception as e:  # noqa: BLE001
                logger.debug("Partial extraction of %s failed: %s", field_name, e)
                continue
            if value is not None:
                partial[field_name] = value
        return partial

    def _attach_metadata(self, request: InFlightRequest, record: Any, attempt: int) -> Any:
        if not isinstance(record, dict):
            return record
        return {
            **record,
            RecordMetadata.FIELD: {
                RecordMetadata.FETCH_TIME_MS: (time.perf_counter() - request.started_at) * 1000,
                RecordMetadata.FETCH_DATE: datetime.now(timezone.utc).isoformat(),
                RecordMetadata.SOURCE: request.locator,
                RecordMetadata.RETRY_COUNT: attempt,
            },
        }

    def _complete(self, request: InFlightRequest, record: Any) -> None:
        if self._in_flight.get(request.key) is request:
            del self._in_flight[request.key]
        if not request.future.done():
            request.future.set_result(record)
        duration_ms = (time.perf_counter() - request.started_at) * 1000
        self._metrics.record(request.key, duration_ms, from_cache=False)
        log_operation_success(
            logger=logger,
            operation="resolve",
            duration_ms=duration_ms,
            result_info={"attempts": request.attempt + 1},
            context={"key": request.key},
        )

    def _fail_or_retry(self, request: InFlightRequest, attempt: int, error: Exception) -> None:
        if self._in_flight.get(request.key) is not request:
            return

        classification = classify_error(error, self.locale)
        self._journal.record(classification, request.key, attempt)

        if attempt < self._settings.max_retries and classification.should_retry:
            delay = compute_backoff_delay(
                classification.backoff_strategy,
                attempt,
                self._settings.base_retry_delay,
            )
            logger.warning(
                "Attempt %d for %s failed (%s), retrying in %.2fs",
                attempt + 1,
                request.key,
                classification.kind.value,
                delay,
            )
            request.retry_handle = asyncio.get_running_loop().call_later(
                delay or 0.0,
                self._requeue,
                request,
                attempt + 1,
            )
            return

        del self._in_flight[request.key]
        failure = self._build_failure(request, attempt, classification, error)
        if not request.future.done():
            request.future.set_exception(failure)
        self._metrics.record(
            request.key,
            (time.perf_counter() - request.started_at) * 1000,
            from_cache=False,
            success=False,
        )
        log_operation_error(logger=logger, error=failure, operation="resolve")

    def _build_failure(
        self,
        request: InFlightRequest,
        attempt: int,
        classification: ErrorClassification,
        error: Exception,
    ) -> FetchFailure:
        return FetchFailure(
            kind=classification.kind,
            user_message=classification.user_message,
            technical_message=classification.technical_message,
            attempts=attempt + 1,
            recoverable=classification.recoverable,
            partial_data=request.partial_data if classification.kind is ErrorKind.PARSING else None,
            context=ErrorContext(
                operation="resolve",
                key=request.key,
                locator=request.locator,
                additional_data={"attempts": attempt + 1},
            ),
            original_error=error,
        )

    def _requeue(self, request: InFlightRequest, attempt: int) -> None:
        request.retry_handle = None
        if self._in_flight.get(request.key) is not request:
            return
        self._queue.appendleft(QueueItem(key=request.key, attempt=attempt))
        self._drain()

    def _cancel_request(self, request: InFlightRequest) -> None:
        if self._in_flight.get(request.key) is request:
            del self._in_flight[request.key]
        self._queue = deque(item for item in self._queue if item.key != request.key)
        if request.retry_handle is not None:
            request.retry_handle.cancel()
            request.retry_handle = None
        if request.task is not None and not request.task.done():
            # The slot is released by the task's done callback
            request.task.cancel()

    def _on_attempt_done(self, request: InFlightRequest, task: asyncio.Task[None]) -> None:
        if request.task is task:
            request.task = None
        if task.cancelled():
            self._release_slot()
            self._drain()
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Fetch attempt for %s crashed", request.key, exc_info=exc)
            if self._in_flight.get(request.key) is request:
                del self._in_flight[request.key]
            if not request.future.done():
                request.future.set_exception(exc)


__all__ = ["FetchOrchestrator", "InFlightRequest", "QueueItem"]
