"""Metrics — Prometheus metrics collection."""

from __future__ import annotations

from evm_accounts.metrics.collector import ClaimMetrics, MetricsCollector

__all__ = ["ClaimMetrics", "MetricsCollector"]
