"""Periodic leaderboard reconciliation.

Incremental leaderboard writes are best-effort and not transactional with the
database, so boards drift (lost writes, redelivered increments). This job
overwrites them with absolute values aggregated from the system of record.
"""

import asyncio
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from clipvote.core.config import settings
from clipvote.core.exceptions import LockNotAcquiredError
from clipvote.core.result import StoreResult
from clipvote.observability.logging import get_logger
from clipvote.observability.metrics import metrics
from clipvote.services.leaderboard import LeaderboardStore
from clipvote.services.leaderboard.keys import utc_date
from clipvote.services.lock import LeaseLock
from clipvote.services.persistence import RankingRepository

logger = get_logger(__name__)

JOB_NAME = "sync_leaderboards"


@dataclass
class SyncStats:
    clips: int = 0
    voters_all: int = 0
    voters_daily: int = 0
    creators: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class LeaderboardSyncJob:
    """Rewrites clip, voter and creator boards from database aggregates."""

    def __init__(
        self,
        leaderboard: LeaderboardStore,
        rankings: RankingRepository,
        lock: Optional[LeaseLock] = None,
    ):
        self.leaderboard = leaderboard
        self.rankings = rankings
        self.lock = lock
        self.running = False
        self._stop_event = asyncio.Event()

    async def run(self) -> SyncStats:
        """
        Run one reconciliation pass.

        Raises:
            LockNotAcquiredError: If another instance is already syncing
        """
        if self.lock is None:
            return await self._sync()
        async with self.lock.hold():
            return await self._sync()

    async def _sync(self) -> SyncStats:
        stats = SyncStats()

        for season_id, slot_position in await self.rankings.active_voting_slots():
            if season_id is None and self.leaderboard.key_scheme != "legacy":
                logger.warning(f"Skipping clip sync for slot {slot_position}: no season id")
                continue
            scores = await self.rankings.clip_scores(season_id, slot_position)
            written = await self.leaderboard.batch_update_clip_scores(season_id, slot_position, scores)
            stats.clips += self._count("clips", written)

        voters = await self.rankings.voter_page("all", settings.SYNC_VOTERS_LIMIT)
        written = await self.leaderboard.batch_update_voter_scores(
            {e.member: e.score for e in voters.entries}, "all"
        )
        stats.voters_all = self._count("voters_all", written)

        today = await self.rankings.voter_page("today", settings.SYNC_DAILY_VOTERS_LIMIT)
        written = await self.leaderboard.batch_update_voter_scores(
            {e.member: e.score for e in today.entries}, "daily", utc_date()
        )
        stats.voters_daily = self._count("voters_daily", written)

        creators = await self.rankings.creator_page(settings.SYNC_CREATORS_LIMIT)
        written = await self.leaderboard.batch_update_creator_scores(
            {e.member: e.score for e in creators.entries}
        )
        stats.creators = self._count("creators", written)

        logger.info("Leaderboards synced", extra=stats.to_dict())
        return stats

    @staticmethod
    def _count(board: str, written: StoreResult[int]) -> int:
        count = written.unwrap_or(0)
        metrics.record_reconciled(board, count)
        return count

    async def run_forever(self, interval_s: Optional[float] = None) -> None:
        interval = settings.SYNC_INTERVAL_S if interval_s is None else interval_s
        self.running = True
        self._stop_event.clear()
        logger.info("Leaderboard sync started")

        while self.running:
            try:
                await self.run()
            except LockNotAcquiredError:
                logger.debug("Leaderboard sync lease held elsewhere, skipping run")
            except asyncio.CancelledError:
                self.running = False
                raise
            except Exception as e:
                logger.error(f"Leaderboard sync failed: {e}", exc_info=True)

            metrics.update_worker_heartbeat("sync")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Leaderboard sync stopped")

    def stop(self) -> None:
        self.running = False
        self._stop_event.set()
