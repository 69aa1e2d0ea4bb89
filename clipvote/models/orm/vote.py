"""Vote ORM model."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from clipvote.models.database import Base


class Vote(Base):
    """One voter's vote on one clip."""

    __tablename__ = "votes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Queue event that produced the row; replays of the same event are no-ops
    event_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)

    clip_id: Mapped[str] = mapped_column(String(64), nullable=False)
    voter_key: Mapped[str] = mapped_column(String(128), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    vote_weight: Mapped[float] = mapped_column(Float, nullable=False, default=1)
    vote_type: Mapped[str] = mapped_column(String(20), nullable=False, default="standard")
    slot_position: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    flagged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint("clip_id", "voter_key", name="uq_votes_clip_voter"),
        Index("idx_votes_voter_key", "voter_key"),
        Index("idx_votes_created_at", "created_at"),
    )
