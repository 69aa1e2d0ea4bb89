"""Comment, like and soft-delete writes."""

from typing import Optional

from sqlalchemy import delete, update
from sqlalchemy.dialects.postgresql import insert

from clipvote.models.database import get_db_context
from clipvote.models.orm.comment import Comment, CommentLike
from clipvote.models.schemas.events import CommentEvent
from clipvote.services.persistence.votes import SessionFactory, event_time


class CommentRepository:
    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._session = session_factory or get_db_context

    @staticmethod
    def create_statement(event: CommentEvent):
        created_at = event_time(event.timestamp)
        return (
            insert(Comment)
            .values(
                id=event.event_id,
                clip_id=event.subject_id,
                user_key=event.actor_key,
                username=event.data.username or "Anonymous",
                avatar_url=event.data.avatar_url,
                comment_text=event.data.comment_text or "",
                parent_comment_id=event.data.parent_comment_id,
                created_at=created_at,
                updated_at=created_at,
            )
            .on_conflict_do_nothing(index_elements=[Comment.id])
        )

    @staticmethod
    def like_statement(comment_id: str, user_key: str, epoch_ms: int):
        return (
            insert(CommentLike)
            .values(comment_id=comment_id, user_key=user_key, created_at=event_time(epoch_ms))
            .on_conflict_do_nothing(index_elements=[CommentLike.comment_id, CommentLike.user_key])
        )

    async def create_comment(self, event: CommentEvent) -> bool:
        """Insert the comment under the event id. False if it already exists."""
        async with self._session() as db:
            result = await db.execute(self.create_statement(event))
            await db.commit()
            return bool(result.rowcount)

    async def like(self, comment_id: str, user_key: str, epoch_ms: int) -> bool:
        """Record a like. An existing like counts as success."""
        async with self._session() as db:
            await db.execute(self.like_statement(comment_id, user_key, epoch_ms))
            await db.commit()
            return True

    async def unlike(self, comment_id: str, user_key: str) -> int:
        async with self._session() as db:
            result = await db.execute(
                delete(CommentLike).where(
                    CommentLike.comment_id == comment_id,
                    CommentLike.user_key == user_key,
                )
            )
            await db.commit()
            return result.rowcount or 0

    async def soft_delete(self, comment_id: str, user_key: str) -> int:
        """Flag the author's comment as deleted."""
        async with self._session() as db:
            result = await db.execute(
                update(Comment)
                .where(Comment.id == comment_id, Comment.user_key == user_key)
                .values(is_deleted=True)
            )
            await db.commit()
            return result.rowcount or 0
