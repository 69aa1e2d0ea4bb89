"""API dependencies for dependency injection."""

from typing import Annotated, Dict, Optional

from fastapi import Depends, HTTPException, Path, status
from redis.asyncio import Redis

from clipvote.core.config import settings
from clipvote.core.exceptions import NotFoundError, StoreUnavailableError
from clipvote.services.leaderboard import LeaderboardReader, LeaderboardStore
from clipvote.services.persistence import RankingRepository
from clipvote.services.queue import EventQueue, build_comment_queue, build_vote_queue
from clipvote.services.store import get_redis_client


def get_redis() -> Optional[Redis]:
    """Process-wide Redis client, or None when it is not initialized."""
    try:
        return get_redis_client()
    except StoreUnavailableError:
        return None


def get_rankings() -> RankingRepository:
    return RankingRepository()


def get_queues(redis: Annotated[Optional[Redis], Depends(get_redis)]) -> Dict[str, EventQueue]:
    return {
        settings.VOTE_QUEUE_NAME: build_vote_queue(redis),
        settings.COMMENT_QUEUE_NAME: build_comment_queue(redis),
    }


def get_queue(
    queues: Annotated[Dict[str, EventQueue], Depends(get_queues)],
    queue: str = Path(..., description="Queue name (vote_queue|comment_queue)"),
) -> EventQueue:
    """
    Resolve the queue named in the path.

    Raises:
        HTTPException: 404 if no such queue exists
    """
    if queue not in queues:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": NotFoundError("Queue", queue).to_dict()},
        )
    return queues[queue]


def get_leaderboard_reader(
    redis: Annotated[Optional[Redis], Depends(get_redis)],
    rankings: Annotated[RankingRepository, Depends(get_rankings)],
) -> LeaderboardReader:
    return LeaderboardReader(LeaderboardStore(redis), rankings)


# Type aliases for cleaner dependency injection
Queues = Annotated[Dict[str, EventQueue], Depends(get_queues)]
Queue = Annotated[EventQueue, Depends(get_queue)]
Reader = Annotated[LeaderboardReader, Depends(get_leaderboard_reader)]
