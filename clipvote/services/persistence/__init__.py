"""Repositories over the relational system of record."""

from clipvote.services.persistence.comments import CommentRepository
from clipvote.services.persistence.rankings import RankingRepository
from clipvote.services.persistence.votes import VoteRepository

__all__ = ["CommentRepository", "RankingRepository", "VoteRepository"]
