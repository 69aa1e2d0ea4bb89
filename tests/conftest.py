"""Pytest configuration and fixtures."""

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import fakeredis
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

# Set testing environment before importing app
os.environ["DATABASE_URL"] = "postgresql://localhost:5432/clipvote_test"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LEADERBOARD_KEY_SCHEME"] = "namespaced"


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def redis() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    """In-memory Redis with Lua scripting, flushed per test."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    await client.flushall()
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def broken_redis() -> MagicMock:
    """Redis client whose every command fails with a connection error."""
    from redis.exceptions import ConnectionError as RedisConnectionError

    client = MagicMock()
    error = RedisConnectionError("Connection refused")
    for command in ("lpush", "delete", "set", "get", "zadd", "zincrby", "zrevrank", "lrange"):
        setattr(client, command, AsyncMock(side_effect=error))

    pipe = MagicMock()
    pipe.execute = AsyncMock(side_effect=error)
    client.pipeline = MagicMock(return_value=pipe)

    script = AsyncMock(side_effect=error)
    client.register_script = MagicMock(return_value=script)
    return client


# =============================================================================
# Queue Fixtures
# =============================================================================


@pytest.fixture
def vote_queue(redis):
    from clipvote.models.schemas.events import VoteEvent
    from clipvote.services.queue import EventQueue

    return EventQueue(redis, "vote_queue", VoteEvent, dead_letter_cap=1000, poison_cap=10)


@pytest.fixture
def comment_queue(redis):
    from clipvote.models.schemas.events import CommentEvent
    from clipvote.services.queue import EventQueue

    return EventQueue(redis, "comment_queue", CommentEvent, dead_letter_cap=1000, poison_cap=10)


# =============================================================================
# App and Client Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def app(redis) -> AsyncGenerator[FastAPI, None]:
    """FastAPI app wired to the in-memory Redis."""
    from clipvote.api.deps import get_redis
    from clipvote.main import app as fastapi_app

    fastapi_app.dependency_overrides[get_redis] = lambda: redis
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
