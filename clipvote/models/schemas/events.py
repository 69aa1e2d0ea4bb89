"""Queue event schemas.

Events travel as camelCase JSON (``eventId``, ``clipId``, ``actorKey``...). Python
code uses snake_case attributes. Unknown fields are kept so an event read back
from the queue and pushed again (retry, replay) is not silently narrowed.
"""

import time
from typing import Any, Dict, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class VoteData(_CamelModel):
    """Vote-specific payload."""

    weight: float = Field(1, ge=0, description="Vote weight (boosted vote types > 1)")
    vote_type: str = Field("standard", description="Vote type (standard, super, mega)")
    slot_position: Optional[int] = Field(None, ge=1, description="Slot the clip competes in")
    season_id: Optional[str] = Field(None, description="Season namespace for the slot")
    user_id: Optional[str] = Field(None, description="Authenticated user id, if any")
    creator_key: Optional[str] = Field(None, description="Clip creator for creator rankings")
    flagged: bool = False


class CommentData(_CamelModel):
    """Comment-specific payload."""

    comment_text: Optional[str] = None
    parent_comment_id: Optional[str] = None
    comment_id: Optional[str] = Field(None, description="Target comment for like/unlike/delete")
    username: Optional[str] = None
    avatar_url: Optional[str] = None


class QueueEvent(BaseModel):
    """One ingested action awaiting durable processing."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    event_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("eventId", "event_id", "voteId"),
        serialization_alias="eventId",
    )
    subject_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("clipId", "subjectId", "clip_id", "subject_id"),
        serialization_alias="clipId",
    )
    actor_key: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("actorKey", "voterKey", "userKey", "actor_key"),
        serialization_alias="actorKey",
    )
    action: str
    timestamp: int = Field(default_factory=now_ms, description="Producer time, epoch ms")
    data: Dict[str, Any] = Field(default_factory=dict)
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_wire(cls, raw: str) -> "QueueEvent":
        return cls.model_validate_json(raw)

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @property
    def retry_count(self) -> int:
        if not self.metadata:
            return 0
        try:
            return int(self.metadata.get("retryCount", 0))
        except (TypeError, ValueError):
            return 0

    @property
    def first_failed_at(self) -> Optional[int]:
        if not self.metadata:
            return None
        value = self.metadata.get("firstFailedAt")
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def with_retry(self, attempts: int, failed_at: Optional[int] = None) -> "QueueEvent":
        """Return a copy carrying the retry bookkeeping used by the workers."""
        metadata = dict(self.metadata or {})
        metadata["retryCount"] = attempts
        metadata["firstFailedAt"] = self.first_failed_at or failed_at or now_ms()
        return self.model_copy(update={"metadata": metadata})


class VoteEvent(QueueEvent):
    """Vote cast (``up``) or revoked (``down``) on a clip."""

    action: Literal["up", "down"]
    data: VoteData = Field(default_factory=VoteData)


class CommentEvent(QueueEvent):
    """Comment created, liked, unliked or deleted on a clip."""

    action: Literal["create", "like", "unlike", "delete"]
    data: CommentData = Field(default_factory=CommentData)


class DeadLetterEntry(_CamelModel):
    """A permanently failed event with its failure history."""

    event: Dict[str, Any]
    error: str
    attempts: int = Field(..., ge=1)
    first_failed_at: int
    last_failed_at: int


class QueueHealth(_CamelModel):
    """Segment lengths plus the last successful batch marker."""

    pending_count: int = 0
    processing_count: int = 0
    dead_letter_count: int = 0
    last_processed_at: Optional[int] = None
