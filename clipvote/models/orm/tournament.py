"""Tournament tables the ingestion side reads.

Owned by the product schema; mapped here only with the columns the workers
and the reconciliation job touch.
"""

from typing import Optional

from sqlalchemy import Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from clipvote.models.database import Base


class TournamentClip(Base):
    __tablename__ = "tournament_clips"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    season_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    slot_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    username: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weighted_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)


class StorySlot(Base):
    __tablename__ = "story_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    season_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    slot_position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="upcoming")
