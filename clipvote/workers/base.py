"""Batch run loop shared by the queue workers."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

from clipvote.core.config import settings
from clipvote.core.exceptions import LockNotAcquiredError, QueueError
from clipvote.models.schemas.events import QueueEvent, QueueHealth, now_ms
from clipvote.observability.logging import LogContext, get_logger, log_event
from clipvote.observability.metrics import metrics
from clipvote.services.lock import LeaseLock
from clipvote.services.queue import ClaimedEvent, EventQueue

logger = get_logger(__name__)

E = TypeVar("E", bound=QueueEvent)


@dataclass
class ProcessingOutcome(Generic[E]):
    """Result of processing one claimed event."""

    claimed: ClaimedEvent[E]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    """Summary of one worker run."""

    processed: int = 0
    failed: int = 0
    dead_lettered: int = 0
    requeued: int = 0
    recovered: int = 0
    acknowledged: bool = False
    health: Optional[QueueHealth] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "dead_lettered": self.dead_lettered,
            "requeued": self.requeued,
            "recovered": self.recovered,
            "acknowledged": self.acknowledged,
            "health": self.health.model_dump(by_alias=True) if self.health else None,
        }


class QueueWorker(ABC, Generic[E]):
    """
    Drains one event queue in batches.

    Each run, under the queue's lease:
        1. Returns orphans of a crashed run to the pending segment
        2. Claims up to ``batch_size`` oldest events
        3. Processes them one by one; a failing event never stops the rest
        4. Re-enqueues failures with a bumped ``retryCount``, or dead-letters
           them once ``max_retries`` attempts are used up
        5. Acknowledges the batch and stamps ``last_processed_at``

    A batch whose failures could not all be forwarded, or whose lease was
    lost, is left in processing for the next run to recover.
    """

    worker_type = "queue"

    def __init__(
        self,
        queue: EventQueue[E],
        batch_size: int,
        lock: Optional[LeaseLock] = None,
        max_retries: Optional[int] = None,
    ):
        self.queue = queue
        self.batch_size = batch_size
        self.lock = lock
        self.max_retries = max_retries or settings.MAX_RETRIES
        self.running = False
        self._stop_event = asyncio.Event()

    @abstractmethod
    async def process_event(self, event: E) -> None:
        """
        Apply one event to the system of record and the derived caches.

        Raises:
            Exception: Any failure; the event is retried or dead-lettered
        """
        pass

    async def process_batch(self, batch: List[ClaimedEvent[E]]) -> List[ProcessingOutcome[E]]:
        outcomes: List[ProcessingOutcome[E]] = []
        for claimed in batch:
            event = claimed.event
            try:
                await self.process_event(event)
            except Exception as e:
                error = getattr(e, "reason", None) or str(e) or type(e).__name__
                log_event(
                    logger,
                    logging.WARNING,
                    f"{self.queue.name}: event failed: {error}",
                    event_id=event.event_id,
                    action=event.action,
                )
                metrics.record_failed(self.queue.name, event.action)
                outcomes.append(ProcessingOutcome(claimed, error=error))
                continue
            metrics.record_processed(self.queue.name, event.action)
            outcomes.append(ProcessingOutcome(claimed))
        return outcomes

    async def run_once(self) -> BatchReport:
        """
        Run one batch, holding the queue's lease when one is configured.

        Raises:
            LockNotAcquiredError: If another instance holds the lease
            QueueError: If the store cannot hand out a batch
        """
        if self.lock is None:
            return await self._run_batch()
        async with self.lock.hold() as lease:
            return await self._run_batch(lease)

    async def run_forever(self, interval_s: Optional[float] = None) -> None:
        """Run batches until ``stop`` is called."""
        interval = settings.WORKER_INTERVAL_S if interval_s is None else interval_s
        self.running = True
        self._stop_event.clear()
        logger.info(f"{self.worker_type} worker started on {self.queue.name}")

        while self.running:
            try:
                report = await self.run_once()
                if report.processed or report.failed or report.recovered:
                    logger.info(
                        f"{self.queue.name} batch done",
                        extra={"queue": self.queue.name, **report.to_dict()},
                    )
            except LockNotAcquiredError:
                logger.debug(f"{self.queue.name}: lease held elsewhere, skipping run")
            except asyncio.CancelledError:
                self.running = False
                raise
            except Exception as e:
                logger.error(f"{self.queue.name}: batch run failed: {e}", exc_info=True)

            metrics.update_worker_heartbeat(self.worker_type)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        logger.info(f"{self.worker_type} worker stopped")

    def stop(self) -> None:
        self.running = False
        self._stop_event.set()

    async def _lease_lost(self, lease: Optional[LeaseLock], step: str, confirm: bool = False) -> bool:
        """True when the lease is gone and ``step`` must not touch the queue."""
        if lease is None:
            return False
        held = await lease.confirm() if confirm else not lease.lost.is_set()
        if not held:
            logger.error(f"{self.queue.name}: lease lost, skipping {step}; batch left for recovery")
        return not held

    async def _run_batch(self, lease: Optional[LeaseLock] = None) -> BatchReport:
        started = time.monotonic()
        report = BatchReport()

        with LogContext(queue=self.queue.name):
            if await self._lease_lost(lease, "recover_orphans"):
                return report
            report.recovered = (await self.queue.recover_orphans()).unwrap_or(0)

            popped = await self.queue.pop_batch(self.batch_size)
            if not popped.is_ok:
                raise QueueError(
                    f"{self.queue.name}: cannot claim batch ({popped.status.value}: {popped.error})",
                    operation="pop_batch",
                )
            batch = popped.value or []
            if not batch:
                report.health = (await self.queue.health()).value
                return report

            outcomes = await self.process_batch(batch)
            report.processed = sum(1 for o in outcomes if o.ok)
            report.failed = len(outcomes) - report.processed

            failures = [o for o in outcomes if not o.ok]
            if failures and await self._lease_lost(lease, "failure handling", confirm=True):
                report.health = (await self.queue.health()).value
                return report
            forwarded_all = await self._handle_failures(failures, report)

            # acknowledge clears the whole processing segment, so it needs a
            # fresh check that no other instance has taken over the queue.
            if not forwarded_all:
                logger.error(f"{self.queue.name}: failed events not forwarded, batch left for recovery")
            elif not await self._lease_lost(lease, "acknowledge", confirm=True):
                report.acknowledged = (await self.queue.acknowledge(batch)).is_ok

            if report.acknowledged:
                await self.queue.set_last_processed_at()
            report.health = (await self.queue.health()).value

        metrics.record_batch(self.queue.name, time.monotonic() - started)
        return report

    async def _handle_failures(self, failures: List[ProcessingOutcome[E]], report: BatchReport) -> bool:
        forwarded_all = True
        failed_at = now_ms()
        # Highest position first so the remaining positions stay valid.
        for outcome in sorted(failures, key=lambda o: o.claimed.position, reverse=True):
            try:
                forwarded = await self._forward_failure(outcome, failed_at, report)
            except Exception as e:
                log_event(
                    logger,
                    logging.ERROR,
                    f"{self.queue.name}: could not forward failed event: {e}",
                    event_id=outcome.claimed.event.event_id,
                )
                forwarded = False
            forwarded_all = forwarded_all and forwarded
        return forwarded_all

    async def _forward_failure(self, outcome: ProcessingOutcome[E], failed_at: int, report: BatchReport) -> bool:
        claimed = outcome.claimed
        attempts = claimed.event.retry_count + 1
        if attempts >= self.max_retries:
            result = await self.queue.move_to_dead_letter(claimed, outcome.error, attempts)
            if result.is_ok:
                report.dead_lettered += 1
        else:
            retried = claimed.event.with_retry(attempts, failed_at)
            result = await self.queue.requeue(claimed, retried)
            if result.is_ok:
                report.requeued += 1
        return result.is_ok
