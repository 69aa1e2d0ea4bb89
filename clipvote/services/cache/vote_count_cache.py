"""Short-lived per-clip vote count cache.

Each clip is cached under two keys, ``vc:<clipId>`` and ``ws:<clipId>``,
written together with the same TTL. A clip with either key missing is a miss;
a lone surviving key is never served.
"""

from typing import Dict, Iterable, List, Optional

from redis.asyncio import Redis

from clipvote.core.config import settings
from clipvote.core.result import StoreResult
from clipvote.models.schemas.leaderboard import CachedVoteData, ClipVoteTotals
from clipvote.observability.metrics import metrics
from clipvote.services.store.redis_client import StoreComponent

VOTE_COUNT_PREFIX = "vc:"
WEIGHTED_SCORE_PREFIX = "ws:"


def vote_count_key(clip_id: str) -> str:
    return f"{VOTE_COUNT_PREFIX}{clip_id}"


def weighted_score_key(clip_id: str) -> str:
    return f"{WEIGHTED_SCORE_PREFIX}{clip_id}"


class VoteCountCache(StoreComponent):
    """Read-through cache of ``(vote_count, weighted_score)`` per clip."""

    component = "vote_count_cache"

    def __init__(self, redis: Optional[Redis], ttl_s: Optional[int] = None):
        super().__init__(redis)
        self.ttl_s = ttl_s or settings.VOTE_CACHE_TTL_S

    async def get_many(self, clip_ids: List[str]) -> StoreResult[Dict[str, CachedVoteData]]:
        """
        Fetch cached data for several clips in one round trip.

        Returns:
            Mapping holding only the clips with both keys present. Absent clips
            must be loaded from the database by the caller.
        """
        if not clip_ids:
            return StoreResult.ok({})

        async def _read(r: Redis):
            pipe = r.pipeline(transaction=False)
            for clip_id in clip_ids:
                pipe.get(vote_count_key(clip_id))
            for clip_id in clip_ids:
                pipe.get(weighted_score_key(clip_id))
            return await pipe.execute()

        result = await self._guard("get_many", _read)
        if not result.is_ok:
            return result

        values = result.value
        half = len(clip_ids)
        found: Dict[str, CachedVoteData] = {}
        for i, clip_id in enumerate(clip_ids):
            vote_count, weighted_score = values[i], values[half + i]
            if vote_count is None or weighted_score is None:
                continue
            try:
                found[clip_id] = CachedVoteData(
                    vote_count=int(float(vote_count)),
                    weighted_score=float(weighted_score),
                )
            except ValueError:
                continue

        metrics.record_cache_lookup(hits=len(found), misses=len(set(clip_ids)) - len(found))
        return StoreResult.ok(found)

    async def set_many(self, clips: Iterable[ClipVoteTotals]) -> StoreResult[int]:
        """Cache several clips in one round trip."""
        clips = list(clips)
        if not clips:
            return StoreResult.ok(0)

        async def _write(r: Redis):
            pipe = r.pipeline(transaction=False)
            for clip in clips:
                self._queue_set(pipe, clip.clip_id, clip.vote_count, clip.weighted_score)
            return await pipe.execute()

        result = await self._guard("set_many", _write)
        if not result.is_ok:
            return result
        return StoreResult.ok(len(clips))

    async def set(self, clip_id: str, vote_count: int, weighted_score: float) -> StoreResult[int]:
        """Refresh one clip right after a vote was applied."""

        async def _write(r: Redis):
            pipe = r.pipeline(transaction=False)
            self._queue_set(pipe, clip_id, vote_count, weighted_score)
            return await pipe.execute()

        result = await self._guard("set", _write)
        if not result.is_ok:
            return result
        return StoreResult.ok(1)

    async def invalidate(self, clip_id: str) -> StoreResult[int]:
        return await self._guard(
            "invalidate",
            lambda r: r.delete(vote_count_key(clip_id), weighted_score_key(clip_id)),
        )

    def _queue_set(self, pipe, clip_id: str, vote_count: int, weighted_score: float) -> None:
        pipe.set(vote_count_key(clip_id), int(vote_count), ex=self.ttl_s)
        pipe.set(weighted_score_key(clip_id), float(weighted_score), ex=self.ttl_s)
