"""API v1 router aggregation."""

from fastapi import APIRouter

from clipvote.api.v1 import dlq, health, leaderboard, queues

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(queues.router, prefix="/queues", tags=["Queues"])
api_router.include_router(dlq.router, prefix="/dlq", tags=["DLQ"])
api_router.include_router(leaderboard.router, prefix="/leaderboard", tags=["Leaderboard"])
