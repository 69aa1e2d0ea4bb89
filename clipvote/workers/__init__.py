"""Queue worker processes."""

from clipvote.workers.base import BatchReport, ProcessingOutcome, QueueWorker
from clipvote.workers.comment_worker import CommentQueueWorker
from clipvote.workers.vote_worker import VoteQueueWorker

__all__ = [
    "BatchReport",
    "CommentQueueWorker",
    "ProcessingOutcome",
    "QueueWorker",
    "VoteQueueWorker",
]
