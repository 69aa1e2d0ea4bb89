"""Engine and sessions for the relational system of record.

Workers, the sync job and the API share one lazily created async engine per
process. Repositories receive ``get_db_context`` (or a test double with the
same shape) as their session factory.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from clipvote.core.config import settings
from clipvote.observability.logging import get_logger

logger = get_logger(__name__)

ASYNC_DRIVER = "postgresql+asyncpg://"


class Base(DeclarativeBase):
    pass


_engine: Optional[AsyncEngine] = None
_sessions: Optional[async_sessionmaker] = None


def get_database_url(url: Optional[str] = None) -> str:
    """``DATABASE_URL`` rewritten to use the asyncpg driver."""
    url = url or settings.DATABASE_URL
    for plain in ("postgresql://", "postgres://"):
        if url.startswith(plain):
            return ASYNC_DRIVER + url[len(plain):]
    return url


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            get_database_url(),
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
            echo=settings.DEBUG,
        )
    return _engine


def get_session_maker() -> async_sessionmaker:
    global _sessions
    if _sessions is None:
        _sessions = async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)
    return _sessions


@asynccontextmanager
async def get_db_context() -> AsyncIterator[AsyncSession]:
    """One session per unit of work. Uncommitted changes are rolled back on error."""
    async with get_session_maker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    get_engine()
    logger.debug("Database engine created")


async def close_db() -> None:
    global _engine, _sessions
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _sessions = None


async def check_db_connection() -> bool:
    """``SELECT 1`` against the pool; False on any connection failure."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Database check failed: {e}")
        return False
    return True
