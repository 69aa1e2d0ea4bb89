"""Leaderboard key layout.

Clip boards exist in two shapes. Namespaced boards carry the season so that
slots of parallel seasons never share a sorted set; legacy boards are keyed by
slot alone and remain for single-season deployments. Both are built here and
nowhere else.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Union

from clipvote.core.config import settings

CLIPS_PREFIX = "leaderboard:clips"
VOTERS_ALL_KEY = "leaderboard:voters:all"
VOTERS_DAILY_PREFIX = "leaderboard:voters:daily"
CREATORS_ALL_KEY = "leaderboard:creators:all"


@dataclass(frozen=True)
class NamespacedSlot:
    season_id: str
    slot_position: int


@dataclass(frozen=True)
class LegacySlot:
    slot_position: int


ClipBoard = Union[NamespacedSlot, LegacySlot]


def clip_board_key(board: ClipBoard) -> str:
    """Resolve a clip board to its sorted-set key."""
    if isinstance(board, NamespacedSlot):
        return f"{CLIPS_PREFIX}:{board.season_id}:{board.slot_position}"
    if isinstance(board, LegacySlot):
        return f"{CLIPS_PREFIX}:{board.slot_position}"
    raise TypeError(f"Unknown clip board: {board!r}")


def clip_board(season_id: Optional[str], slot_position: int, scheme: Optional[str] = None) -> ClipBoard:
    """Build the clip board for the configured key scheme."""
    scheme = scheme or settings.LEADERBOARD_KEY_SCHEME
    if scheme == "legacy":
        return LegacySlot(slot_position)
    if not season_id:
        raise ValueError("season_id is required for namespaced clip leaderboards")
    return NamespacedSlot(season_id, slot_position)


def utc_date(moment: Optional[datetime] = None) -> str:
    """``YYYY-MM-DD`` of the given instant (default now) in UTC."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date().isoformat()


def daily_voters_key(day: Optional[Union[str, date]] = None) -> str:
    if day is None:
        day = utc_date()
    elif isinstance(day, datetime):
        day = utc_date(day)
    elif isinstance(day, date):
        day = day.isoformat()
    return f"{VOTERS_DAILY_PREFIX}:{day}"
