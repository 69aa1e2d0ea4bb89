"""Sorted-set leaderboards for clips, voters and creators.

Clip scores are set absolutely from the authoritative totals, so replaying a
clip update is harmless. Voter and creator scores accumulate through ZINCRBY
and drift under retries; the reconciliation job overwrites them with absolute
values.
"""

from typing import Dict, List, Literal, Optional

from redis.asyncio import Redis

from clipvote.core.config import settings
from clipvote.core.result import StoreResult
from clipvote.models.schemas.leaderboard import LeaderboardEntry, LeaderboardPage
from clipvote.observability.logging import get_logger
from clipvote.services.leaderboard.keys import (
    CREATORS_ALL_KEY,
    VOTERS_ALL_KEY,
    clip_board,
    clip_board_key,
    daily_voters_key,
)
from clipvote.services.store.redis_client import StoreComponent

logger = get_logger(__name__)

VoterTimeframe = Literal["all", "today", "week"]


class LeaderboardStore(StoreComponent):
    """Ranked views over clip, voter and creator scores."""

    component = "leaderboard"

    def __init__(
        self,
        redis: Optional[Redis],
        key_scheme: Optional[str] = None,
        daily_ttl_s: Optional[int] = None,
    ):
        super().__init__(redis)
        self.key_scheme = key_scheme or settings.LEADERBOARD_KEY_SCHEME
        self.daily_ttl_s = daily_ttl_s or settings.DAILY_LEADERBOARD_TTL_S

    def clip_key(self, season_id: Optional[str], slot_position: int) -> str:
        return clip_board_key(clip_board(season_id, slot_position, self.key_scheme))

    # ------------------------------------------------------------------
    # Incremental writes (queue workers)
    # ------------------------------------------------------------------

    async def update_clip_score(
        self,
        season_id: Optional[str],
        clip_id: str,
        slot_position: int,
        weighted_score: float,
    ) -> StoreResult[int]:
        """Set a clip's absolute score in its slot board."""
        key = self.clip_key(season_id, slot_position)
        return await self._guard(
            "update_clip_score",
            lambda r: r.zadd(key, {clip_id: weighted_score}),
        )

    async def update_voter_score(self, voter_key: str, increment: float) -> StoreResult[List]:
        """Add to a voter's all-time and today's scores; refreshes the daily TTL."""
        daily = daily_voters_key()

        async def _write(r: Redis):
            pipe = r.pipeline(transaction=False)
            pipe.zincrby(VOTERS_ALL_KEY, increment, voter_key)
            pipe.zincrby(daily, increment, voter_key)
            pipe.expire(daily, self.daily_ttl_s)
            return await pipe.execute()

        return await self._guard("update_voter_score", _write)

    async def update_creator_score(self, creator_key: str, increment: float) -> StoreResult[float]:
        return await self._guard(
            "update_creator_score",
            lambda r: r.zincrby(CREATORS_ALL_KEY, increment, creator_key),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_top(self, key: str, limit: int, offset: int = 0) -> StoreResult[LeaderboardPage]:
        """
        Highest scores first, with the board's total size.

        An absent key is an empty page. An unreachable store is UNAVAILABLE so
        the caller can fall back to the system of record.
        """
        if limit <= 0:
            return StoreResult.ok(LeaderboardPage())

        async def _read(r: Redis):
            pipe = r.pipeline(transaction=False)
            pipe.zrevrange(key, offset, offset + limit - 1, withscores=True)
            pipe.zcard(key)
            return await pipe.execute()

        result = await self._guard("get_top", _read)
        if not result.is_ok:
            return result

        rows, total = result.value
        entries = [LeaderboardEntry(member=str(member), score=float(score)) for member, score in rows or []]
        return StoreResult.ok(LeaderboardPage(entries=entries, total=int(total or 0)))

    async def get_top_clips(
        self,
        season_id: Optional[str],
        slot_position: int,
        limit: int = 20,
        offset: int = 0,
    ) -> StoreResult[LeaderboardPage]:
        return await self.get_top(self.clip_key(season_id, slot_position), limit, offset)

    async def get_top_voters(
        self,
        timeframe: VoterTimeframe = "all",
        limit: int = 20,
        offset: int = 0,
    ) -> StoreResult[LeaderboardPage]:
        # No weekly board is maintained; weekly rankings come from the database.
        if timeframe == "week":
            return StoreResult.unavailable("no weekly voter board")
        key = daily_voters_key() if timeframe == "today" else VOTERS_ALL_KEY
        return await self.get_top(key, limit, offset)

    async def get_top_creators(self, limit: int = 20, offset: int = 0) -> StoreResult[LeaderboardPage]:
        return await self.get_top(CREATORS_ALL_KEY, limit, offset)

    async def get_rank(self, key: str, member: str) -> StoreResult[Optional[int]]:
        """1-based rank of ``member`` (highest score = 1), or None if absent."""
        result = await self._guard("get_rank", lambda r: r.zrevrank(key, member))
        if not result.is_ok:
            return result
        rank = result.value
        return StoreResult.ok(int(rank) + 1 if rank is not None else None)

    async def get_voter_rank(
        self, voter_key: str, timeframe: Literal["all", "today"] = "all"
    ) -> StoreResult[Optional[int]]:
        key = daily_voters_key() if timeframe == "today" else VOTERS_ALL_KEY
        return await self.get_rank(key, voter_key)

    async def get_creator_rank(self, creator_key: str) -> StoreResult[Optional[int]]:
        return await self.get_rank(CREATORS_ALL_KEY, creator_key)

    # ------------------------------------------------------------------
    # Maintenance and reconciliation
    # ------------------------------------------------------------------

    async def clear_slot(self, season_id: Optional[str], slot_position: int) -> StoreResult[int]:
        """Drop a slot board, e.g. when the slot closes."""
        key = self.clip_key(season_id, slot_position)
        result = await self._guard("clear_slot", lambda r: r.delete(key))
        if result.is_ok:
            logger.info(f"Cleared clip leaderboard {key}")
        return result

    async def batch_update_clip_scores(
        self,
        season_id: Optional[str],
        slot_position: int,
        clips: Dict[str, float],
    ) -> StoreResult[int]:
        """Overwrite clip scores of one slot with absolute values."""
        if not clips:
            return StoreResult.ok(0)
        key = self.clip_key(season_id, slot_position)
        return await self._absolute_write("batch_update_clip_scores", key, clips)

    async def batch_update_voter_scores(
        self,
        voters: Dict[str, float],
        timeframe: Literal["all", "daily"] = "all",
        day: Optional[str] = None,
    ) -> StoreResult[int]:
        """Overwrite voter scores. The daily board gets its TTL refreshed."""
        if not voters:
            return StoreResult.ok(0)
        if timeframe == "daily":
            key = daily_voters_key(day)
            return await self._absolute_write("batch_update_voter_scores", key, voters, ttl=self.daily_ttl_s)
        return await self._absolute_write("batch_update_voter_scores", VOTERS_ALL_KEY, voters)

    async def batch_update_creator_scores(self, creators: Dict[str, float]) -> StoreResult[int]:
        if not creators:
            return StoreResult.ok(0)
        return await self._absolute_write("batch_update_creator_scores", CREATORS_ALL_KEY, creators)

    async def _absolute_write(
        self,
        operation: str,
        key: str,
        scores: Dict[str, float],
        ttl: Optional[int] = None,
    ) -> StoreResult[int]:
        async def _write(r: Redis):
            pipe = r.pipeline(transaction=False)
            for member, score in scores.items():
                pipe.zadd(key, {member: float(score)})
            if ttl:
                pipe.expire(key, ttl)
            return await pipe.execute()

        result = await self._guard(operation, _write)
        if not result.is_ok:
            return result
        return StoreResult.ok(len(scores))
