"""Comment queue worker."""

from typing import Optional

from clipvote.core.config import settings
from clipvote.core.exceptions import EventProcessingError
from clipvote.models.schemas.events import CommentEvent
from clipvote.services.lock import LeaseLock
from clipvote.services.persistence import CommentRepository
from clipvote.services.queue import EventQueue
from clipvote.workers.base import QueueWorker


class CommentQueueWorker(QueueWorker[CommentEvent]):
    """Persists comment creates, likes, unlikes and soft deletes."""

    worker_type = "comment"

    def __init__(
        self,
        queue: EventQueue[CommentEvent],
        comments: CommentRepository,
        lock: Optional[LeaseLock] = None,
        batch_size: Optional[int] = None,
        max_retries: Optional[int] = None,
    ):
        super().__init__(
            queue,
            batch_size=batch_size or settings.COMMENT_BATCH_SIZE,
            lock=lock,
            max_retries=max_retries,
        )
        self.comments = comments

    async def process_event(self, event: CommentEvent) -> None:
        if event.action == "create":
            await self.comments.create_comment(event)
            return

        comment_id = event.data.comment_id
        if not comment_id:
            raise EventProcessingError(event.event_id, f"Missing commentId for {event.action} action")

        if event.action == "like":
            await self.comments.like(comment_id, event.actor_key, event.timestamp)
        elif event.action == "unlike":
            await self.comments.unlike(comment_id, event.actor_key)
        else:
            await self.comments.soft_delete(comment_id, event.actor_key)
