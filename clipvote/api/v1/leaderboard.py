"""Leaderboard read endpoints."""

from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query

from clipvote.api.deps import Reader
from clipvote.core.config import settings
from clipvote.core.exceptions import ValidationError
from clipvote.models.schemas.leaderboard import LeaderboardPage

router = APIRouter()


@router.get("/clips", response_model=LeaderboardPage)
async def top_clips(
    reader: Reader,
    slot: int = Query(..., ge=1, description="Slot position"),
    season_id: Optional[str] = Query(None, description="Season id (required for namespaced boards)"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Clips of one slot, highest weighted score first."""
    if settings.LEADERBOARD_KEY_SCHEME == "namespaced" and not season_id:
        raise HTTPException(
            status_code=422,
            detail={"error": ValidationError("season_id is required").to_dict()},
        )
    return await reader.top_clips(season_id, slot, limit, offset)


@router.get("/voters", response_model=LeaderboardPage)
async def top_voters(
    reader: Reader,
    timeframe: Literal["all", "today", "week"] = Query("all"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    return await reader.top_voters(timeframe, limit, offset)


@router.get("/creators", response_model=LeaderboardPage)
async def top_creators(
    reader: Reader,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    return await reader.top_creators(limit, offset)
