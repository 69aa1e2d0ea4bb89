"""Sorted-set leaderboards."""

from clipvote.services.leaderboard.keys import (
    ClipBoard,
    LegacySlot,
    NamespacedSlot,
    clip_board,
    clip_board_key,
    daily_voters_key,
)
from clipvote.services.leaderboard.reader import LeaderboardReader
from clipvote.services.leaderboard.store import LeaderboardStore

__all__ = [
    "ClipBoard",
    "LeaderboardReader",
    "LeaderboardStore",
    "LegacySlot",
    "NamespacedSlot",
    "clip_board",
    "clip_board_key",
    "daily_voters_key",
]
