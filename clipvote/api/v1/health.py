"""Health check endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from redis.asyncio import Redis

from clipvote.api.deps import get_redis
from clipvote.core.config import settings
from clipvote.models.database import check_db_connection
from clipvote.observability.logging import get_logger
from clipvote.observability.metrics import metrics
from clipvote.services.store import ping

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Liveness probe endpoint.

    Returns basic status - use this for container liveness checks.
    """
    return {"status": "ok"}


@router.get("/ready")
async def readiness_check(redis: Annotated[Optional[Redis], Depends(get_redis)]):
    """
    Readiness probe endpoint.

    Checks connectivity to PostgreSQL and Redis. Returns 503 if either is
    unhealthy.
    """
    checks = {}
    all_healthy = True

    try:
        db_ok = await check_db_connection()
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_ok = False
    checks["postgres"] = "ok" if db_ok else "error"
    all_healthy = all_healthy and db_ok

    if redis is None:
        checks["redis"] = "not_initialized"
        all_healthy = False
    else:
        redis_ok = await ping(redis)
        checks["redis"] = "ok" if redis_ok else "error"
        all_healthy = all_healthy and redis_ok

    result = {
        "status": "ready" if all_healthy else "not_ready",
        "dependencies": checks,
    }
    if not all_healthy:
        return JSONResponse(content=result, status_code=503)
    return result


@router.get("/metrics")
async def prometheus_metrics():
    """
    Prometheus metrics endpoint.

    Returns all metrics in Prometheus text format.
    """
    if not settings.METRICS_ENABLED:
        return Response(content="Metrics disabled", status_code=404)

    content = metrics.get_metrics()
    return Response(content=content, media_type="text/plain; charset=utf-8")
