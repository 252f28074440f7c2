"""Operational helpers."""

from scorecast.ops.rate_limiter import RateLimiter, get_rate_limiter
from scorecast.ops.metrics import MetricsRecorder, InMemoryMetricsRecorder, get_metrics_recorder
from scorecast.ops.logging import configure_logging

__all__ = [
    "RateLimiter",
    "get_rate_limiter",
    "MetricsRecorder",
    "InMemoryMetricsRecorder",
    "get_metrics_recorder",
    "configure_logging",
]
