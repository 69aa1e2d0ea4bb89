"""Comment and comment-like ORM models."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from clipvote.models.database import Base


class Comment(Base):
    """A comment on a clip. The primary key is the queue event id."""

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    clip_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_key: Mapped[str] = mapped_column(String(128), nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False, default="Anonymous")
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    comment_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    parent_comment_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_comments_clip_created", "clip_id", "created_at"),
        Index("idx_comments_parent", "parent_comment_id"),
    )


class CommentLike(Base):
    """A user's like on a comment."""

    __tablename__ = "comment_likes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    comment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("comments.id", ondelete="CASCADE"), nullable=False
    )
    user_key: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint("comment_id", "user_key", name="uq_comment_likes_comment_user"),
    )
