"""Vote queue worker."""

from typing import Optional

from clipvote.core.config import settings
from clipvote.models.schemas.events import VoteEvent
from clipvote.services.cache import VoteCountCache
from clipvote.services.leaderboard import LeaderboardStore
from clipvote.services.lock import LeaseLock
from clipvote.services.persistence import VoteRepository
from clipvote.services.queue import EventQueue
from clipvote.workers.base import QueueWorker


class VoteQueueWorker(QueueWorker[VoteEvent]):
    """
    Persists votes and refreshes the vote-derived caches.

    ``up`` inserts the vote (a replay of the same vote is a no-op), ``down``
    deletes it. Clip scores and cached counts are then set from the recounted
    totals. Voter boards move by the vote weight and creator boards by one
    vote, matching what reconciliation writes; both only move when a row
    actually changed, so redelivered events do not inflate them.
    """

    worker_type = "vote"

    def __init__(
        self,
        queue: EventQueue[VoteEvent],
        votes: VoteRepository,
        leaderboard: LeaderboardStore,
        cache: VoteCountCache,
        lock: Optional[LeaseLock] = None,
        batch_size: Optional[int] = None,
        max_retries: Optional[int] = None,
    ):
        super().__init__(
            queue,
            batch_size=batch_size or settings.VOTE_BATCH_SIZE,
            lock=lock,
            max_retries=max_retries,
        )
        self.votes = votes
        self.leaderboard = leaderboard
        self.cache = cache

    async def process_event(self, event: VoteEvent) -> None:
        clip_id = event.subject_id
        weight = event.data.weight

        if event.action == "up":
            changed = await self.votes.record_vote(event)
            direction = 1 if changed else 0
        else:
            changed = await self.votes.delete_vote(clip_id, event.actor_key) > 0
            await self.cache.invalidate(clip_id)
            direction = -1 if changed else 0

        totals = await self.votes.refresh_clip_totals(clip_id)

        season_id = totals.season_id if totals.season_id is not None else event.data.season_id
        slot_position = totals.slot_position if totals.slot_position is not None else event.data.slot_position
        if slot_position is not None and (season_id or self.leaderboard.key_scheme == "legacy"):
            await self.leaderboard.update_clip_score(season_id, clip_id, slot_position, totals.weighted_score)

        await self.cache.set(clip_id, totals.vote_count, totals.weighted_score)

        if direction:
            # Voters rank by vote weight, creators by number of votes received.
            await self.leaderboard.update_voter_score(event.actor_key, direction * weight)
            creator = totals.creator_key or event.data.creator_key
            if creator:
                await self.leaderboard.update_creator_score(creator, direction)
