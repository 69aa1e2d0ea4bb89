"""Key-value store client management."""

from clipvote.services.store.redis_client import (
    StoreComponent,
    close_redis_client,
    get_redis_client,
    init_redis_client,
    ping,
)

__all__ = [
    "StoreComponent",
    "close_redis_client",
    "get_redis_client",
    "init_redis_client",
    "ping",
]
