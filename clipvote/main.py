"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from clipvote.api.v1.router import api_router
from clipvote.core.config import settings
from clipvote.models.database import close_db, init_db
from clipvote.observability.logging import get_logger, setup_logging
from clipvote.observability.metrics import metrics
from clipvote.services.store import close_redis_client, init_redis_client

logger = get_logger(__name__)

__version__ = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME}")

    await init_db()
    logger.info("Database connection pool initialized")

    await init_redis_client()
    logger.info("Redis connection initialized")

    metrics.set_app_info(version=__version__, key_scheme=settings.LEADERBOARD_KEY_SCHEME)

    yield

    logger.info("Shutting down...")

    await close_redis_client()
    logger.info("Redis connections closed")

    await close_db()
    logger.info("Database connections closed")

    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    description="Vote and comment event ingestion with leaderboard caches",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint with API info."""
    return {
        "name": settings.APP_NAME,
        "version": __version__,
        "docs": "/docs",
        "health": "/api/v1/health",
        "ready": "/api/v1/ready",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "clipvote.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
