"""Event queue services."""

from clipvote.services.queue.event_queue import ClaimedEvent, EventQueue, QueueKeys
from clipvote.services.queue.factory import build_comment_queue, build_vote_queue

__all__ = [
    "ClaimedEvent",
    "EventQueue",
    "QueueKeys",
    "build_comment_queue",
    "build_vote_queue",
]
