"""Prometheus metrics for observability."""

import time
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)


class MetricsCollector:
    """Centralized metrics collection for the ingestion subsystem."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.app_info = Info(
            "clipvote_app",
            "Application information",
            registry=self.registry,
        )

        # Queue counters
        self.events_pushed = Counter(
            "clipvote_events_pushed_total",
            "Events pushed onto a queue",
            ["queue", "status"],
            registry=self.registry,
        )
        self.events_claimed = Counter(
            "clipvote_events_claimed_total",
            "Events moved from main to processing",
            ["queue"],
            registry=self.registry,
        )
        self.events_processed = Counter(
            "clipvote_events_processed_total",
            "Events persisted to the system of record",
            ["queue", "action"],
            registry=self.registry,
        )
        self.events_failed = Counter(
            "clipvote_events_failed_total",
            "Per-event processing failures",
            ["queue", "action"],
            registry=self.registry,
        )
        self.events_requeued = Counter(
            "clipvote_events_requeued_total",
            "Failed events pushed back onto main for retry",
            ["queue"],
            registry=self.registry,
        )
        self.events_dead_lettered = Counter(
            "clipvote_events_dead_lettered_total",
            "Events moved to the dead-letter sink",
            ["queue"],
            registry=self.registry,
        )
        self.events_malformed = Counter(
            "clipvote_events_malformed_total",
            "Unparsable queue items quarantined during dequeue",
            ["queue"],
            registry=self.registry,
        )
        self.orphans_recovered = Counter(
            "clipvote_orphans_recovered_total",
            "Items moved from processing back to main on startup",
            ["queue"],
            registry=self.registry,
        )

        # Queue gauges
        self.queue_depth = Gauge(
            "clipvote_queue_depth",
            "Current segment length",
            ["queue", "segment"],
            registry=self.registry,
        )
        self.last_processed_at = Gauge(
            "clipvote_queue_last_processed_timestamp",
            "Epoch seconds of the last acknowledged batch",
            ["queue"],
            registry=self.registry,
        )
        self.worker_heartbeat = Gauge(
            "clipvote_worker_heartbeat_timestamp",
            "Last worker heartbeat timestamp",
            ["worker_type"],
            registry=self.registry,
        )

        self.batch_duration = Histogram(
            "clipvote_batch_duration_seconds",
            "Time to process one claimed batch",
            ["queue"],
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry,
        )

        # Derived caches
        self.cache_lookups = Counter(
            "clipvote_vote_cache_lookups_total",
            "Vote-count cache lookups per clip",
            ["result"],  # hit / miss
            registry=self.registry,
        )
        self.leaderboard_reads = Counter(
            "clipvote_leaderboard_reads_total",
            "Leaderboard reads by serving source",
            ["board", "source"],  # cache / database
            registry=self.registry,
        )
        self.store_errors = Counter(
            "clipvote_store_errors_total",
            "Store operations that degraded to unavailable/error",
            ["component", "operation", "status"],
            registry=self.registry,
        )
        self.reconciled_entries = Counter(
            "clipvote_reconciled_entries_total",
            "Leaderboard entries overwritten by reconciliation",
            ["board"],
            registry=self.registry,
        )

    def set_app_info(self, version: str, key_scheme: str):
        self.app_info.info({"version": version, "leaderboard_key_scheme": key_scheme})

    def record_push(self, queue: str, status: str):
        self.events_pushed.labels(queue=queue, status=status).inc()

    def record_claimed(self, queue: str, count: int):
        if count:
            self.events_claimed.labels(queue=queue).inc(count)

    def record_processed(self, queue: str, action: str):
        self.events_processed.labels(queue=queue, action=action).inc()

    def record_failed(self, queue: str, action: str):
        self.events_failed.labels(queue=queue, action=action).inc()

    def record_requeued(self, queue: str):
        self.events_requeued.labels(queue=queue).inc()

    def record_dead_letter(self, queue: str):
        self.events_dead_lettered.labels(queue=queue).inc()

    def record_malformed(self, queue: str, count: int = 1):
        self.events_malformed.labels(queue=queue).inc(count)

    def record_orphans(self, queue: str, count: int):
        if count:
            self.orphans_recovered.labels(queue=queue).inc(count)

    def record_batch(self, queue: str, duration_seconds: float):
        self.batch_duration.labels(queue=queue).observe(duration_seconds)

    def update_queue_depth(self, queue: str, pending: int, processing: int, dead_letter: int):
        """Update all three segment gauges for a queue."""
        self.queue_depth.labels(queue=queue, segment="main").set(pending)
        self.queue_depth.labels(queue=queue, segment="processing").set(processing)
        self.queue_depth.labels(queue=queue, segment="dead_letter").set(dead_letter)

    def update_last_processed(self, queue: str, epoch_ms: Optional[int]):
        if epoch_ms:
            self.last_processed_at.labels(queue=queue).set(epoch_ms / 1000)

    def update_worker_heartbeat(self, worker_type: str):
        self.worker_heartbeat.labels(worker_type=worker_type).set(time.time())

    def record_cache_lookup(self, hits: int, misses: int):
        if hits:
            self.cache_lookups.labels(result="hit").inc(hits)
        if misses:
            self.cache_lookups.labels(result="miss").inc(misses)

    def record_leaderboard_read(self, board: str, source: str):
        self.leaderboard_reads.labels(board=board, source=source).inc()

    def record_store_error(self, component: str, operation: str, status: str):
        self.store_errors.labels(component=component, operation=operation, status=status).inc()

    def record_reconciled(self, board: str, count: int):
        if count:
            self.reconciled_entries.labels(board=board).inc(count)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self.registry)


# Global metrics instance
metrics = MetricsCollector()
