"""Queue health endpoint for stall alerting."""

from typing import Dict, Optional

from fastapi import APIRouter

from clipvote.api.deps import Queues
from clipvote.models.schemas.events import QueueHealth

router = APIRouter()


@router.get("/health", response_model=Dict[str, Optional[QueueHealth]], response_model_by_alias=True)
async def queue_health(queues: Queues):
    """
    Segment lengths and last-processed marker per queue.

    A queue whose store cannot be reached is reported as ``null`` rather than
    as empty.
    """
    report = {}
    for name, queue in queues.items():
        result = await queue.health()
        report[name] = result.value if result.is_ok else None
    return report
