"""SQLAlchemy ORM models."""

from clipvote.models.orm.comment import Comment, CommentLike
from clipvote.models.orm.tournament import StorySlot, TournamentClip
from clipvote.models.orm.vote import Vote

__all__ = [
    "Comment",
    "CommentLike",
    "StorySlot",
    "TournamentClip",
    "Vote",
]
