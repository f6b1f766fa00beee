"""
Request Metrics Module

Running timings of ``resolve`` calls, split into cache-served and fetched
requests, with averages over a bounded window of recent samples.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

from docvault.shared.constants import MetricsDefaults

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestTiming:
    """One finished request."""

    key: str
    duration_ms: float
    from_cache: bool
    success: bool
    timestamp: float


@dataclass
class RequestMetricsSummary:
    """Aggregated request metrics."""

    total_requests: int = 0
    cache_served: int = 0
    fetched: int = 0
    failed: int = 0
    avg_request_ms: float = 0.0
    avg_fetch_ms: float = 0.0
    slow_requests: int = 0
    cache_served_ratio: float = field(init=False, default=0.0)

    def __post_init__(self) -> None:
        self.cache_served_ratio = (
            self.cache_served / self.total_requests if self.total_requests > 0 else 0.0
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def calculate_average(values: list[float]) -> float:
    """Mean of ``values``, 0.0 when empty."""
    if not values:
        return 0.0
    return sum(values) / len(values)


class RequestMetrics:
    """Collects request timings.

    Counters cover every request since the last reset; averages use the
    most recent ``max_samples`` timings.

    Args:
        max_samples: Size of the timing window
        slow_request_ms: Fetches slower than this are logged at WARNING
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self,
        max_samples: int = MetricsDefaults.MAX_SAMPLES,
        slow_request_ms: float = MetricsDefaults.SLOW_REQUEST_MS,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._timings: deque[RequestTiming] = deque(maxlen=max_samples)
        self._slow_request_ms = slow_request_ms
        self._clock = clock or time.time
        self._total = 0
        self._cache_served = 0
        self._failed = 0
        self._slow = 0

    def record(self, key: str, duration_ms: float, *, from_cache: bool, success: bool = True) -> None:
        """Record one finished request."""
        self._timings.append(
            RequestTiming(
                key=key,
                duration_ms=duration_ms,
                from_cache=from_cache,
                success=success,
                timestamp=self._clock(),
            ),
        )
        self._total += 1
        if from_cache:
            self._cache_served += 1
        if not success:
            self._failed += 1

        if not from_cache and duration_ms > self._slow_request_ms:
            self._slow += 1
            logger.warning("Slow request: %.2fms for %s", duration_ms, key)

    def timings(self) -> list[RequestTiming]:
        return list(self._timings)

    def summary(self) -> RequestMetricsSummary:
        fetch_durations = [t.duration_ms for t in self._timings if not t.from_cache]
        return RequestMetricsSummary(
            total_requests=self._total,
            cache_served=self._cache_served,
            fetched=self._total - self._cache_served,
            failed=self._failed,
            avg_request_ms=calculate_average([t.duration_ms for t in self._timings]),
            avg_fetch_ms=calculate_average(fetch_durations),
            slow_requests=self._slow,
        )

    def reset(self) -> None:
        self._timings.clear()
        self._total = 0
        self._cache_served = 0
        self._failed = 0
        self._slow = 0
        logger.debug("Request metrics reset")


__all__ = ["RequestMetrics", "RequestMetricsSummary", "RequestTiming", "calculate_average"]
