"""
Prometheus metrics for monitoring the scan pipeline.

Defines and exposes metrics for:
- Upstream Reddit requests and the remaining request budget
- Response cache efficiency
- Scan outcomes and latency
- Mentions detected
- Aggregate and evidence writes

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from meme_radar.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the meme-radar pipeline.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_upstream_request("hot", 200)
        metrics.record_scan("wallstreetbets", "success", latency=4.2)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        # Upstream
        self.upstream_requests = Counter(
            "meme_radar_upstream_requests_total",
            "Total requests sent to the Reddit API",
            ["endpoint", "status"],  # endpoint: token, hot, comments
        )

        self.cache_lookups = Counter(
            "meme_radar_cache_lookups_total",
            "Response cache lookups",
            ["result"],  # hit, miss
        )

        self.request_budget_remaining = Gauge(
            "meme_radar_request_budget_remaining",
            "Requests left in the trailing budget window",
        )

        # Scans
        self.scans = Counter(
            "meme_radar_scans_total",
            "Community scans",
            ["community", "status"],  # status: success, error
        )

        self.scan_latency = Histogram(
            "meme_radar_scan_latency_seconds",
            "Time to scan one community",
            ["community"],
            buckets=LATENCY_BUCKETS,
        )

        self.mentions_detected = Counter(
            "meme_radar_mentions_detected_total",
            "Ticker mentions detected",
            ["source"],  # post, comment
        )

        # Persistence
        self.aggregates_written = Counter(
            "meme_radar_aggregates_written_total",
            "Aggregate rows upserted",
        )

        self.evidence_written = Counter(
            "meme_radar_evidence_written_total",
            "Evidence rows upserted",
        )

        self.persistence_errors = Counter(
            "meme_radar_persistence_errors_total",
            "Errors raised while persisting aggregates",
            ["error_type"],
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_upstream_request(self, endpoint: str, status: int | str) -> None:
        """
        Record an upstream request outcome.

        Args:
            endpoint: Logical endpoint (token, hot, comments)
            status: HTTP status code, or "error" for network failures
        """
        self.upstream_requests.labels(endpoint=endpoint, status=str(status)).inc()

    def record_cache(self, hit: bool) -> None:
        self.cache_lookups.labels(result="hit" if hit else "miss").inc()

    def set_budget_remaining(self, remaining: int) -> None:
        self.request_budget_remaining.set(remaining)

    def record_scan(
        self,
        community: str,
        status: str,
        latency: float | None = None,
    ) -> None:
        """
        Record a community scan.

        Args:
            community: Subreddit name
            status: success or error
            latency: Optional scan duration in seconds
        """
        self.scans.labels(community=community, status=status).inc()
        if latency is not None:
            self.scan_latency.labels(community=community).observe(latency)

    def record_mentions(self, source: str, count: int = 1) -> None:
        if count:
            self.mentions_detected.labels(source=source).inc(count)

    def record_persisted(self, aggregates: int, evidence: int) -> None:
        """Record rows written by one persist call."""
        self.aggregates_written.inc(aggregates)
        self.evidence_written.inc(evidence)

    def record_persistence_error(self, error_type: str) -> None:
        self.persistence_errors.labels(error_type=error_type).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
