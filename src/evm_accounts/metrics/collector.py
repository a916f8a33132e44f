"""Metrics collector — Prometheus counters, gauges, histograms.

- ``evm_accounts_claims_total`` counter-vec (outcome: success or error code)
- ``evm_accounts_merges_total`` counter
- ``evm_accounts_claim_duration_seconds`` histogram
- ``evm_accounts_mapped_total`` gauge
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

_PREFIX = "evm_accounts"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`ClaimMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        """Register and return a Gauge."""
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)


class ClaimMetrics:
    """High-level metrics for the claim service."""

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._claims = self._collector.counter(
            f"{_PREFIX}_claims",
            "Claim attempts by outcome",
            ("outcome",),
        )
        self._merges = self._collector.counter(
            f"{_PREFIX}_merges",
            "Fallback accounts merged into a claiming account",
        )
        self._claim_duration = self._collector.histogram(
            f"{_PREFIX}_claim_duration_seconds",
            "Duration of claim operations",
        )
        self._mapped = self._collector.gauge(
            f"{_PREFIX}_mapped_total",
            "Number of claimed address mappings",
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    def record_claim(self, outcome: str) -> None:
        """Count a claim attempt; ``outcome`` is ``success`` or an error code."""
        self._claims.labels(outcome=outcome).inc()

    def record_merge(self) -> None:
        self._merges.inc()

    def watch_mapped_count(self, count: Callable[[], int]) -> None:
        """Report the number of claimed mappings by calling ``count`` at scrape time."""
        self._mapped.set_function(count)

    @contextmanager
    def track_claim(self) -> Iterator[None]:
        """Track the duration of a claim."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._claim_duration.observe(time.monotonic() - start)
