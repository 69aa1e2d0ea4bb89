"""Redis client lifecycle and guarded store access.

The process bootstrap (API lifespan or worker main) owns the client: it calls
``init_redis_client`` once, passes the handle into every component, and calls
``close_redis_client`` on shutdown. Components never build their own client.
"""

from typing import Awaitable, Callable, Optional, TypeVar

from redis.asyncio import Redis, from_url
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from clipvote.core.config import settings
from clipvote.core.exceptions import StoreUnavailableError
from clipvote.core.result import StoreResult, StoreStatus
from clipvote.observability.logging import get_logger
from clipvote.observability.metrics import metrics

logger = get_logger(__name__)

T = TypeVar("T")

_redis_client: Optional[Redis] = None


async def init_redis_client(url: Optional[str] = None) -> Redis:
    """Initialize the process-wide Redis client."""
    global _redis_client
    _redis_client = from_url(
        url or settings.REDIS_URL,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT_S,
        decode_responses=True,
    )
    return _redis_client


async def close_redis_client() -> None:
    """Close the Redis client."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def get_redis_client() -> Redis:
    """Get the Redis client instance."""
    if _redis_client is None:
        raise StoreUnavailableError("Redis client not initialized")
    return _redis_client


async def ping(client: Optional[Redis]) -> bool:
    """Check Redis connectivity."""
    if client is None:
        return False
    try:
        return bool(await client.ping())
    except (RedisError, OSError):
        return False


class StoreComponent:
    """Base for components that degrade instead of raising on store failure.

    A component built with ``redis=None`` models an unconfigured store: every
    guarded call returns ``StoreResult.unavailable()``.
    """

    component = "store"

    def __init__(self, redis: Optional[Redis]):
        self.redis = redis

    async def _guard(
        self,
        operation: str,
        call: Callable[[Redis], Awaitable[T]],
    ) -> StoreResult[T]:
        if self.redis is None:
            return self._degrade(operation, StoreStatus.UNAVAILABLE, "store not configured")
        try:
            return StoreResult.ok(await call(self.redis))
        except (RedisConnectionError, RedisTimeoutError, OSError) as e:
            return self._degrade(operation, StoreStatus.UNAVAILABLE, str(e))
        except RedisError as e:
            return self._degrade(operation, StoreStatus.ERROR, str(e))

    def _degrade(self, operation: str, status: StoreStatus, error: str) -> StoreResult:
        logger.warning(
            f"{self.component}.{operation} degraded: {error}",
            extra={"component": self.component, "operation": operation, "status": status.value},
        )
        metrics.record_store_error(self.component, operation, status.value)
        if status is StoreStatus.UNAVAILABLE:
            return StoreResult.unavailable(error)
        return StoreResult.failed(error)
