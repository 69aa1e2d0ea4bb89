"""Leaderboard aggregations over the system of record.

Used by the reconciliation job to overwrite drifted sorted sets, and by the
leaderboard reader when the store cannot answer.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Literal, Optional, Tuple

from sqlalchemy import func, select

from clipvote.models.database import get_db_context
from clipvote.models.orm.tournament import StorySlot, TournamentClip
from clipvote.models.orm.vote import Vote
from clipvote.models.schemas.leaderboard import LeaderboardEntry, LeaderboardPage
from clipvote.services.persistence.votes import SessionFactory

Timeframe = Literal["all", "today", "week"]


def window_start(timeframe: Timeframe, now: Optional[datetime] = None) -> Optional[datetime]:
    """Lower bound of a voter timeframe, in UTC. None means all time."""
    now = now or datetime.now(timezone.utc)
    midnight = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    if timeframe == "today":
        return midnight
    if timeframe == "week":
        return midnight - timedelta(days=7)
    return None


class RankingRepository:
    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._session = session_factory or get_db_context

    async def active_voting_slots(self) -> List[Tuple[Optional[str], int]]:
        """(season_id, slot_position) of every slot currently open for voting."""
        async with self._session() as db:
            result = await db.execute(
                select(StorySlot.season_id, StorySlot.slot_position).where(StorySlot.status == "voting")
            )
            return [(season_id, int(slot)) for season_id, slot in result.all()]

    async def clip_scores(self, season_id: Optional[str], slot_position: int) -> Dict[str, float]:
        """Weighted scores of the active clips in one slot."""
        query = select(TournamentClip.id, TournamentClip.weighted_score).where(
            TournamentClip.slot_position == slot_position,
            TournamentClip.status == "active",
        )
        if season_id is not None:
            query = query.where(TournamentClip.season_id == season_id)
        async with self._session() as db:
            result = await db.execute(query)
            return {clip_id: float(score or 0) for clip_id, score in result.all()}

    async def clip_page(
        self,
        season_id: Optional[str],
        slot_position: int,
        limit: int,
        offset: int = 0,
    ) -> LeaderboardPage:
        filters = [
            TournamentClip.slot_position == slot_position,
            TournamentClip.status == "active",
        ]
        if season_id is not None:
            filters.append(TournamentClip.season_id == season_id)

        async with self._session() as db:
            rows = await db.execute(
                select(TournamentClip.id, TournamentClip.weighted_score)
                .where(*filters)
                .order_by(TournamentClip.weighted_score.desc(), TournamentClip.id)
                .offset(offset)
                .limit(limit)
            )
            total = await db.scalar(select(func.count(TournamentClip.id)).where(*filters))

        return LeaderboardPage(
            entries=[LeaderboardEntry(member=m, score=float(s or 0)) for m, s in rows.all()],
            total=int(total or 0),
        )

    async def voter_page(self, timeframe: Timeframe, limit: int, offset: int = 0) -> LeaderboardPage:
        """Voters ranked by summed vote weight within the timeframe."""
        since = window_start(timeframe)
        filters = [Vote.created_at >= since] if since is not None else []
        score = func.sum(Vote.vote_weight).label("score")

        async with self._session() as db:
            rows = await db.execute(
                select(Vote.voter_key, score)
                .where(*filters)
                .group_by(Vote.voter_key)
                .order_by(score.desc(), Vote.voter_key)
                .offset(offset)
                .limit(limit)
            )
            total = await db.scalar(select(func.count(func.distinct(Vote.voter_key))).where(*filters))

        return LeaderboardPage(
            entries=[LeaderboardEntry(member=m, score=float(s or 0)) for m, s in rows.all()],
            total=int(total or 0),
        )

    async def creator_page(self, limit: int, offset: int = 0) -> LeaderboardPage:
        """Creators ranked by the votes their clips received."""
        creator = func.coalesce(TournamentClip.username, "unknown").label("creator")
        score = func.sum(TournamentClip.vote_count).label("score")

        async with self._session() as db:
            rows = await db.execute(
                select(creator, score)
                .group_by(creator)
                .order_by(score.desc(), creator)
                .offset(offset)
                .limit(limit)
            )
            total = await db.scalar(
                select(func.count(func.distinct(func.coalesce(TournamentClip.username, "unknown"))))
            )

        return LeaderboardPage(
            entries=[LeaderboardEntry(member=m, score=float(s or 0)) for m, s in rows.all()],
            total=int(total or 0),
        )
