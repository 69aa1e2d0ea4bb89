"""Vote writes and authoritative clip totals."""

from datetime import datetime, timezone
from typing import AsyncContextManager, Callable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from clipvote.models.database import get_db_context
from clipvote.models.orm.tournament import TournamentClip
from clipvote.models.orm.vote import Vote
from clipvote.models.schemas.events import VoteEvent
from clipvote.models.schemas.leaderboard import ClipVoteTotals

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


def event_time(epoch_ms: int) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)


class VoteRepository:
    """Idempotent vote persistence keyed by event id and (clip, voter)."""

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._session = session_factory or get_db_context

    @staticmethod
    def insert_statement(event: VoteEvent):
        """INSERT ... ON CONFLICT DO NOTHING for a cast vote."""
        return (
            insert(Vote)
            .values(
                event_id=event.event_id,
                clip_id=event.subject_id,
                voter_key=event.actor_key,
                user_id=event.data.user_id,
                vote_weight=event.data.weight,
                vote_type=event.data.vote_type,
                slot_position=event.data.slot_position or 1,
                flagged=event.data.flagged,
                created_at=event_time(event.timestamp),
            )
            .on_conflict_do_nothing()
        )

    async def record_vote(self, event: VoteEvent) -> bool:
        """Insert the vote. Returns False when it already existed."""
        async with self._session() as db:
            result = await db.execute(self.insert_statement(event))
            await db.commit()
            return bool(result.rowcount)

    async def delete_vote(self, clip_id: str, voter_key: str) -> int:
        async with self._session() as db:
            result = await db.execute(
                delete(Vote).where(Vote.clip_id == clip_id, Vote.voter_key == voter_key)
            )
            await db.commit()
            return result.rowcount or 0

    async def refresh_clip_totals(self, clip_id: str) -> ClipVoteTotals:
        """
        Recount a clip's votes and write the totals onto the clip row.

        Returns:
            Authoritative totals, with the clip's season, slot and creator when
            the clip row exists
        """
        async with self._session() as db:
            counted = await db.execute(
                select(
                    func.count(Vote.id),
                    func.coalesce(func.sum(Vote.vote_weight), 0),
                ).where(Vote.clip_id == clip_id)
            )
            vote_count, weighted_score = counted.one()

            await db.execute(
                update(TournamentClip)
                .where(TournamentClip.id == clip_id)
                .values(vote_count=vote_count, weighted_score=weighted_score)
            )
            clip = (
                await db.execute(select(TournamentClip).where(TournamentClip.id == clip_id))
            ).scalar_one_or_none()
            await db.commit()

        return ClipVoteTotals(
            clip_id=clip_id,
            vote_count=int(vote_count or 0),
            weighted_score=float(weighted_score or 0),
            season_id=clip.season_id if clip else None,
            slot_position=clip.slot_position if clip else None,
            creator_key=clip.username if clip else None,
        )
