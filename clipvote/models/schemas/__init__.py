"""Pydantic schemas for queue events, leaderboards and caches."""

from clipvote.models.schemas.events import (
    CommentData,
    CommentEvent,
    DeadLetterEntry,
    QueueEvent,
    QueueHealth,
    VoteData,
    VoteEvent,
    now_ms,
)
from clipvote.models.schemas.leaderboard import (
    CachedVoteData,
    ClipVoteTotals,
    LeaderboardEntry,
    LeaderboardPage,
)

__all__ = [
    "CommentData",
    "CommentEvent",
    "DeadLetterEntry",
    "QueueEvent",
    "QueueHealth",
    "VoteData",
    "VoteEvent",
    "now_ms",
    "CachedVoteData",
    "ClipVoteTotals",
    "LeaderboardEntry",
    "LeaderboardPage",
]
