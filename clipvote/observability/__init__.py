"""Observability module - metrics and structured logging."""

from clipvote.observability.metrics import metrics, MetricsCollector
from clipvote.observability.logging import setup_logging, get_logger

__all__ = ["metrics", "MetricsCollector", "setup_logging", "get_logger"]
