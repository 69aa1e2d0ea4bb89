"""Crash-safe event queue over Redis lists.

Each queue instance owns four lists and a marker:

    <name>                      main: pending events, newest at the head
    <name>:processing           claimed by the current consumer run, oldest first
    <name>:dead_letter          exhausted retries, newest first, capped
    <name>:poison               unparsable items quarantined at claim time, capped
    <name>:last_processed_at    epoch ms of the last acknowledged batch

An event's state is the list currently holding its serialized form. All moves
between lists run as Lua scripts, so an item is never in two lists and never
dropped by a push that lands mid-move.

Claiming, acknowledging and orphan recovery assume a single active consumer
per queue (see ``clipvote.services.lock.LeaseLock``).
"""

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Generic, List, Optional, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError
from redis.asyncio import Redis

from clipvote.core.result import StoreResult
from clipvote.models.schemas.events import DeadLetterEntry, QueueEvent, QueueHealth, now_ms
from clipvote.observability.logging import get_logger, log_queue_op
from clipvote.observability.metrics import metrics
from clipvote.services.queue import scripts
from clipvote.services.store.redis_client import StoreComponent

logger = get_logger(__name__)

E = TypeVar("E", bound=QueueEvent)


@dataclass(frozen=True)
class QueueKeys:
    """Store keys for one queue instance."""

    main: str
    processing: str
    dead_letter: str
    poison: str
    last_processed: str

    @classmethod
    def for_queue(cls, name: str) -> "QueueKeys":
        return cls(
            main=name,
            processing=f"{name}:processing",
            dead_letter=f"{name}:dead_letter",
            poison=f"{name}:poison",
            last_processed=f"{name}:last_processed_at",
        )


@dataclass(frozen=True)
class ClaimedEvent(Generic[E]):
    """A parsed event plus the handle needed to remove it from processing.

    ``raw`` is the exact string stored in the queue. It is never rebuilt from
    ``event``, so removal does not depend on re-serialization order.
    """

    event: E
    raw: str
    position: int


class EventQueue(StoreComponent, Generic[E]):
    """Ordered, at-least-once delivery channel for one event type."""

    component = "event_queue"

    def __init__(
        self,
        redis: Optional[Redis],
        name: str,
        event_model: Type[E],
        dead_letter_cap: int = 1000,
        poison_cap: int = 1000,
    ):
        super().__init__(redis)
        self.name = name
        self.event_model = event_model
        self.keys = QueueKeys.for_queue(name)
        self.dead_letter_cap = dead_letter_cap
        self.poison_cap = poison_cap
        if redis is not None:
            self._claim = redis.register_script(scripts.CLAIM_BATCH)
            self._recover = redis.register_script(scripts.RECOVER_ORPHANS)
            self._forward = redis.register_script(scripts.FORWARD_CLAIMED)
            self._replay = redis.register_script(scripts.REPLAY_DEAD_LETTERS)

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    async def push(self, event: E) -> StoreResult[int]:
        """Append an event to main. Returns the new pending length."""
        raw = event.to_wire()
        result = await self._guard("push", lambda r: r.lpush(self.keys.main, raw))
        metrics.record_push(self.name, result.status.value)
        return result

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    async def pop_batch(self, max_count: int) -> StoreResult[List[ClaimedEvent[E]]]:
        """
        Atomically move up to ``max_count`` oldest pending events to processing.

        Args:
            max_count: Maximum number of events to claim

        Returns:
            Claimed events, oldest first. Unparsable items are quarantined in
            the poison list and left out of the result.
        """
        result = await self._guard(
            "pop_batch",
            lambda r: self._claim(
                keys=[self.keys.main, self.keys.processing], args=[max_count]
            ),
        )
        if not result.is_ok:
            return result

        start, items = result.value or (0, [])
        start = int(start)
        metrics.record_claimed(self.name, len(items))

        claimed: List[ClaimedEvent[E]] = []
        malformed = []
        for index, raw in enumerate(items):
            try:
                event = self.event_model.from_wire(raw)
            except (PydanticValidationError, ValueError) as e:
                malformed.append((start + index, raw, str(e)))
                continue
            # Items quarantined ahead of this one shift it towards the head.
            claimed.append(ClaimedEvent(event=event, raw=raw, position=start + index - len(malformed)))

        # Highest position first so earlier positions stay valid.
        for position, raw, error in reversed(malformed):
            await self._quarantine(position, raw, error)

        if items:
            log_queue_op(
                logger,
                self.name,
                "claimed",
                claimed=len(claimed),
                malformed=len(malformed),
            )
        return StoreResult.ok(claimed)

    async def acknowledge(self, batch: List[ClaimedEvent[E]]) -> StoreResult[int]:
        """
        Remove a fully processed batch from processing.

        Clears the whole processing list: with one active consumer that never
        partially commits, processing holds exactly the batch being acked.
        """
        if not batch:
            return StoreResult.ok(0)
        result = await self._guard("acknowledge", lambda r: r.delete(self.keys.processing))
        if result.is_ok:
            log_queue_op(logger, self.name, "acknowledged", count=len(batch))
        return result

    async def move_to_dead_letter(
        self,
        claimed: ClaimedEvent[E],
        error: str,
        attempts: int,
    ) -> StoreResult[int]:
        """
        Move one claimed event from processing to the capped dead-letter list.

        Args:
            claimed: Handle returned by ``pop_batch``
            error: Last failure description
            attempts: Number of processing attempts so far

        Returns:
            Number of processing items removed (1, or 0 if already gone)
        """
        failed_at = now_ms()
        entry = DeadLetterEntry(
            event=json.loads(claimed.raw),
            error=error,
            attempts=max(1, attempts),
            first_failed_at=claimed.event.first_failed_at or failed_at,
            last_failed_at=failed_at,
        )
        result = await self._forward_claimed(
            "move_to_dead_letter",
            claimed,
            destination=self.keys.dead_letter,
            payload=entry.model_dump_json(by_alias=True),
            cap=self.dead_letter_cap,
        )
        if result.is_ok:
            metrics.record_dead_letter(self.name)
            log_queue_op(
                logger,
                self.name,
                "dead_lettered",
                level=logging.WARNING,
                event_id=claimed.event.event_id,
                error=error,
                attempts=attempts,
            )
        return result

    async def requeue(self, claimed: ClaimedEvent[E], event: E) -> StoreResult[int]:
        """Move one claimed event back to main, replaced by ``event`` (retry)."""
        result = await self._forward_claimed(
            "requeue",
            claimed,
            destination=self.keys.main,
            payload=event.to_wire(),
            cap=0,
        )
        if result.is_ok:
            metrics.record_requeued(self.name)
        return result

    async def recover_orphans(self) -> StoreResult[int]:
        """
        Return every processing item to the oldest end of main.

        Run at consumer start, before ``pop_batch``. Only safe while no other
        consumer is working on the processing list.
        """
        result = await self._guard(
            "recover_orphans",
            lambda r: self._recover(keys=[self.keys.main, self.keys.processing]),
        )
        if result.is_ok:
            count = int(result.value or 0)
            metrics.record_orphans(self.name, count)
            if count:
                log_queue_op(logger, self.name, "orphans_recovered", level=logging.WARNING, count=count)
            return StoreResult.ok(count)
        return result

    async def set_last_processed_at(self, epoch_ms: Optional[int] = None) -> StoreResult[bool]:
        stamp = epoch_ms or now_ms()
        result = await self._guard(
            "set_last_processed_at",
            lambda r: r.set(self.keys.last_processed, str(stamp)),
        )
        if result.is_ok:
            metrics.update_last_processed(self.name, stamp)
        return result

    async def health(self) -> StoreResult[QueueHealth]:
        """Segment lengths and last-processed marker, for stall alerting."""

        async def _read(r: Redis):
            pipe = r.pipeline(transaction=False)
            pipe.llen(self.keys.main)
            pipe.llen(self.keys.processing)
            pipe.llen(self.keys.dead_letter)
            pipe.get(self.keys.last_processed)
            return await pipe.execute()

        result = await self._guard("health", _read)
        if not result.is_ok:
            return result

        pending, processing, dead_letter, last = result.value
        health = QueueHealth(
            pending_count=int(pending or 0),
            processing_count=int(processing or 0),
            dead_letter_count=int(dead_letter or 0),
            last_processed_at=int(last) if last else None,
        )
        metrics.update_queue_depth(
            self.name, health.pending_count, health.processing_count, health.dead_letter_count
        )
        return StoreResult.ok(health)

    # ------------------------------------------------------------------
    # Dead-letter inspection and replay
    # ------------------------------------------------------------------

    async def list_dead_letters(self, limit: int = 50, offset: int = 0) -> StoreResult[List[DeadLetterEntry]]:
        """Dead-letter entries, newest first."""
        result = await self._guard(
            "list_dead_letters",
            lambda r: r.lrange(self.keys.dead_letter, offset, offset + limit - 1),
        )
        if not result.is_ok:
            return result

        entries = []
        for raw in result.value or []:
            try:
                entries.append(DeadLetterEntry.model_validate_json(raw))
            except (PydanticValidationError, ValueError) as e:
                logger.error(f"{self.name}: unreadable dead-letter entry: {e}")
        return StoreResult.ok(entries)

    async def replay_dead_letters(self, count: int) -> StoreResult[int]:
        """
        Re-inject the oldest ``count`` dead-lettered events into main.

        Retry bookkeeping is reset so replayed events get a full set of attempts.
        """
        if count <= 0:
            return StoreResult.ok(0)

        read = await self._guard(
            "replay_dead_letters",
            lambda r: r.lrange(self.keys.dead_letter, -count, -1),
        )
        if not read.is_ok:
            return read

        # lrange returns newest..oldest for this slice; replay oldest first
        expected = list(reversed(read.value or []))
        events = []
        for raw in expected:
            event = json.loads(raw)["event"]
            metadata = event.get("metadata") or {}
            metadata.pop("retryCount", None)
            metadata.pop("firstFailedAt", None)
            if metadata:
                event["metadata"] = metadata
            else:
                event.pop("metadata", None)
            events.append(json.dumps(event, separators=(",", ":")))

        if not expected:
            return StoreResult.ok(0)

        result = await self._guard(
            "replay_dead_letters",
            lambda r: self._replay(
                keys=[self.keys.dead_letter, self.keys.main],
                args=[len(expected), *expected, *events],
            ),
        )
        if result.is_ok:
            moved = int(result.value or 0)
            log_queue_op(logger, self.name, "dead_letters_replayed", count=moved)
            return StoreResult.ok(moved)
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _forward_claimed(
        self,
        operation: str,
        claimed: ClaimedEvent,
        destination: str,
        payload: str,
        cap: int,
    ) -> StoreResult[int]:
        tombstone = f"__removed__:{uuid.uuid4()}"
        result = await self._guard(
            operation,
            lambda r: self._forward(
                keys=[self.keys.processing, destination],
                args=[claimed.position, claimed.raw, payload, cap, tombstone],
            ),
        )
        if result.is_ok:
            return StoreResult.ok(int(result.value or 0))
        return result

    async def _quarantine(self, position: int, raw: str, error: str) -> None:
        logger.error(
            f"{self.name}: dropping unparsable event into poison list",
            extra={"queue": self.name, "error": error[:500]},
        )
        metrics.record_malformed(self.name)
        payload = json.dumps({"raw": raw, "error": error[:1000], "quarantinedAt": now_ms()})
        handle = ClaimedEvent(event=None, raw=raw, position=position)
        await self._forward_claimed("quarantine", handle, self.keys.poison, payload, self.poison_cap)
