"""
Prometheus metrics for the sync engine.

Defines and exposes metrics for:
- Pages processed per datasource and outcome
- Sync runs and their status
- Slug conflicts resolved by suffixing
- Provider call and run latency

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    start_http_server,
)

from pagesync.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
RUN_BUCKETS = (0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0)


class MetricsCollector:
    """
    Prometheus metrics collector for pagesync.

    Usage:
        metrics = get_metrics()
        metrics.start_server()
        metrics.record_page("blog", "processed")
    """

    def __init__(self):
        self.pages_processed = Counter(
            "pagesync_pages_processed_total",
            "Pages handled by the sync engine",
            ["datasource", "status"],  # status: processed, skipped, failed
        )

        self.sync_runs = Counter(
            "pagesync_sync_runs_total",
            "Datasource sync runs",
            ["datasource", "status"],  # status: success, error
        )

        self.slug_conflicts = Counter(
            "pagesync_slug_conflicts_total",
            "Slugs that needed a suffix to stay unique",
            ["datasource", "resolution"],  # resolution: numbered, random
        )

        self.provider_errors = Counter(
            "pagesync_provider_errors_total",
            "Provider calls that failed",
            ["datasource", "error_type"],
        )

        self.page_latency = Histogram(
            "pagesync_page_latency_seconds",
            "Time to build and store one page",
            ["datasource"],
            buckets=LATENCY_BUCKETS,
        )

        self.sync_duration = Histogram(
            "pagesync_sync_duration_seconds",
            "Wall-clock duration of a datasource sync run",
            ["datasource"],
            buckets=RUN_BUCKETS,
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """Start the Prometheus metrics HTTP server."""
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    def record_page(
        self,
        datasource: str,
        status: str,
        latency: float | None = None,
    ) -> None:
        """
        Record one page outcome.

        Args:
            datasource: Datasource alias
            status: processed, skipped or failed
            latency: Optional build+store latency in seconds
        """
        self.pages_processed.labels(datasource=datasource, status=status).inc()
        if latency is not None:
            self.page_latency.labels(datasource=datasource).observe(latency)

    def record_sync_run(self, datasource: str, status: str, duration: float) -> None:
        """Record a finished sync run and its duration in seconds."""
        self.sync_runs.labels(datasource=datasource, status=status).inc()
        self.sync_duration.labels(datasource=datasource).observe(duration)

    def record_slug_conflict(self, datasource: str, resolution: str) -> None:
        self.slug_conflicts.labels(datasource=datasource, resolution=resolution).inc()

    def record_provider_error(self, datasource: str, error_type: str) -> None:
        self.provider_errors.labels(datasource=datasource, error_type=error_type).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
