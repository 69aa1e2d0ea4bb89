"""Derived read caches."""

from clipvote.services.cache.vote_count_cache import VoteCountCache, vote_count_key, weighted_score_key

__all__ = ["VoteCountCache", "vote_count_key", "weighted_score_key"]
