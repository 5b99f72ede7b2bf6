"""Observability layer - logging, metrics, and tracing."""

from pagesync.observability.logging import setup_logging
from pagesync.observability.metrics import MetricsCollector, get_metrics
from pagesync.observability.tracing import get_tracer, setup_tracing, traced

__all__ = [
    "setup_logging",
    "MetricsCollector",
    "get_metrics",
    "setup_tracing",
    "get_tracer",
    "traced",
]
