"""Leaderboard and vote-count cache schemas."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LeaderboardEntry(BaseModel):
    """A ``(member, score)`` pair inside a sorted set."""

    member: str
    score: float


class LeaderboardPage(BaseModel):
    """One page of a ranked leaderboard plus the set's cardinality."""

    entries: List[LeaderboardEntry] = Field(default_factory=list)
    total: int = 0
    source: Optional[Literal["cache", "database"]] = None


class CachedVoteData(BaseModel):
    """Vote count and weighted score of one clip."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    vote_count: int
    weighted_score: float


class ClipVoteTotals(CachedVoteData):
    """Authoritative totals for a clip, as read from the system of record."""

    clip_id: str
    season_id: Optional[str] = None
    slot_position: Optional[int] = None
    creator_key: Optional[str] = None
