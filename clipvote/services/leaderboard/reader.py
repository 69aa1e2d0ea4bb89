"""Leaderboard reads with database fallback."""

from typing import Awaitable, Callable, Literal, Optional

from clipvote.core.result import StoreResult
from clipvote.models.schemas.leaderboard import LeaderboardPage
from clipvote.observability.logging import get_logger
from clipvote.observability.metrics import metrics
from clipvote.services.leaderboard.store import LeaderboardStore
from clipvote.services.persistence.rankings import RankingRepository

logger = get_logger(__name__)


class LeaderboardReader:
    """Serves ranked pages from the store, or from the database when the
    store reports it cannot answer.

    An empty store page is a real answer and is returned as is.
    """

    def __init__(self, store: LeaderboardStore, rankings: Optional[RankingRepository] = None):
        self.store = store
        self.rankings = rankings or RankingRepository()

    async def top_clips(
        self,
        season_id: Optional[str],
        slot_position: int,
        limit: int = 20,
        offset: int = 0,
    ) -> LeaderboardPage:
        return await self._read(
            "clips",
            self.store.get_top_clips(season_id, slot_position, limit, offset),
            lambda: self.rankings.clip_page(season_id, slot_position, limit, offset),
        )

    async def top_voters(
        self,
        timeframe: Literal["all", "today", "week"] = "all",
        limit: int = 20,
        offset: int = 0,
    ) -> LeaderboardPage:
        return await self._read(
            "voters",
            self.store.get_top_voters(timeframe, limit, offset),
            lambda: self.rankings.voter_page(timeframe, limit, offset),
        )

    async def top_creators(self, limit: int = 20, offset: int = 0) -> LeaderboardPage:
        return await self._read(
            "creators",
            self.store.get_top_creators(limit, offset),
            lambda: self.rankings.creator_page(limit, offset),
        )

    async def _read(
        self,
        board: str,
        cached: Awaitable[StoreResult[LeaderboardPage]],
        fallback: Callable[[], Awaitable[LeaderboardPage]],
    ) -> LeaderboardPage:
        result = await cached
        if not result.should_fallback:
            metrics.record_leaderboard_read(board, "cache")
            return result.value.model_copy(update={"source": "cache"})

        logger.info(f"Leaderboard {board} served from database ({result.status.value})")
        page = await fallback()
        metrics.record_leaderboard_read(board, "database")
        return page.model_copy(update={"source": "database"})
