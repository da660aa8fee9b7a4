"""Observability layer - logging and metrics."""

from meme_radar.observability.logging import setup_logging
from meme_radar.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
