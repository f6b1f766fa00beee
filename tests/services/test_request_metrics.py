"""Tests for request timing metrics."""

from __future__ import annotations

import logging

import pytest

from docvault.services.request_metrics import RequestMetrics, calculate_average


class TestCalculateAverage:
    def test_average(self):
        assert calculate_average([100.0, 200.0, 300.0]) == 200.0

    def test_empty(self):
        assert calculate_average([]) == 0.0


class TestRequestMetrics:
    def test_empty_summary(self):
        summary = RequestMetrics().summary()

        assert summary.total_requests == 0
        assert summary.cache_served_ratio == 0.0
        assert summary.avg_request_ms == 0.0

    def test_summary_splits_cache_and_fetch(self, clock):
        metrics = RequestMetrics(clock=clock)
        metrics.record("A", 150.0, from_cache=False)
        metrics.record("A", 2.0, from_cache=True)
        metrics.record("B", 250.0, from_cache=False, success=False)

        summary = metrics.summary()

        assert summary.total_requests == 3
        assert summary.cache_served == 1
        assert summary.fetched == 2
        assert summary.failed == 1
        assert summary.avg_fetch_ms == 200.0
        assert summary.avg_request_ms == pytest.approx(134.0)
        assert summary.to_dict()["cache_served_ratio"] == pytest.approx(1 / 3)
        assert metrics.timings()[0].timestamp == clock.now

    def test_window_bounds_averages_not_counters(self):
        metrics = RequestMetrics(max_samples=2)
        for duration in (1000.0, 10.0, 20.0):
            metrics.record("A", duration, from_cache=True)

        summary = metrics.summary()

        assert len(metrics.timings()) == 2
        assert summary.total_requests == 3
        assert summary.avg_request_ms == 15.0

    def test_slow_fetch_logged(self, caplog):
        metrics = RequestMetrics(slow_request_ms=500.0)

        with caplog.at_level(logging.WARNING, logger="docvault.services.request_metrics"):
            metrics.record("A", 750.0, from_cache=False)
            metrics.record("B", 900.0, from_cache=True)

        assert metrics.summary().slow_requests == 1
        assert [record.getMessage() for record in caplog.records] == ["Slow request: 750.00ms for A"]

    def test_reset(self):
        metrics = RequestMetrics()
        metrics.record("A", 10.0, from_cache=False)

        metrics.reset()

        assert metrics.timings() == []
        assert metrics.summary().total_requests == 0
