"""Dead-letter inspection and replay endpoints."""

from typing import List

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from clipvote.api.deps import Queue
from clipvote.core.exceptions import StoreUnavailableError
from clipvote.core.result import StoreResult
from clipvote.models.schemas.events import DeadLetterEntry
from clipvote.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


class DeadLetterListResponse(BaseModel):
    queue: str
    items: List[DeadLetterEntry]
    total: int
    limit: int
    offset: int


class ReplayRequest(BaseModel):
    count: int = Field(1, ge=1, le=1000, description="Number of oldest entries to re-inject")


class ReplayResponse(BaseModel):
    queue: str
    replayed: int


def _require(result: StoreResult, operation: str):
    if not result.is_ok:
        logger.warning(f"DLQ {operation} failed: {result.status.value} {result.error}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": StoreUnavailableError(result.error or "store unavailable").to_dict()},
        )
    return result.value


@router.get(
    "/{queue}",
    response_model=DeadLetterListResponse,
    response_model_by_alias=True,
    summary="List dead-lettered events",
)
async def list_dead_letters(
    queue: Queue,
    limit: int = Query(50, ge=1, le=100, description="Max results"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
):
    """Dead-letter entries of one queue, newest first."""
    items = _require(await queue.list_dead_letters(limit=limit, offset=offset), "list")
    health = _require(await queue.health(), "count")
    return DeadLetterListResponse(
        queue=queue.name,
        items=items,
        total=health.dead_letter_count,
        limit=limit,
        offset=offset,
    )


@router.post(
    "/{queue}/replay",
    response_model=ReplayResponse,
    summary="Replay dead-lettered events",
)
async def replay_dead_letters(queue: Queue, request: ReplayRequest):
    """
    Move the oldest ``count`` dead-lettered events back to the pending
    segment with their retry count reset.
    """
    replayed = _require(await queue.replay_dead_letters(request.count), "replay")
    logger.info(f"Replayed {replayed} dead-lettered events on {queue.name}")
    return ReplayResponse(queue=queue.name, replayed=replayed)
