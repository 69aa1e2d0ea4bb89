"""Constructors for the two queue instances."""

from typing import Optional

from redis.asyncio import Redis

from clipvote.core.config import settings
from clipvote.models.schemas.events import CommentEvent, VoteEvent
from clipvote.services.queue.event_queue import EventQueue


def build_vote_queue(redis: Optional[Redis]) -> EventQueue[VoteEvent]:
    return EventQueue(
        redis,
        name=settings.VOTE_QUEUE_NAME,
        event_model=VoteEvent,
        dead_letter_cap=settings.DEAD_LETTER_CAP,
        poison_cap=settings.POISON_CAP,
    )


def build_comment_queue(redis: Optional[Redis]) -> EventQueue[CommentEvent]:
    return EventQueue(
        redis,
        name=settings.COMMENT_QUEUE_NAME,
        event_model=CommentEvent,
        dead_letter_cap=settings.DEAD_LETTER_CAP,
        poison_cap=settings.POISON_CAP,
    )
