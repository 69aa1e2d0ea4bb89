"""Single-active-consumer lease over a Redis key.

``SET lock:<job> <token> NX PX <ttl>`` grants the lease; renewal and release
only touch the key while it still holds this instance's token. A crashed
holder loses the lease once the TTL runs out.
"""

import asyncio
import os
import socket
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from redis.asyncio import Redis

from clipvote.core.config import settings
from clipvote.core.exceptions import LockNotAcquiredError
from clipvote.observability.logging import get_logger

logger = get_logger(__name__)

RENEW_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('PEXPIRE', KEYS[1], ARGV[2])
end
return 0
"""

RELEASE_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('DEL', KEYS[1])
end
return 0
"""


def lock_key(job_name: str) -> str:
    return f"lock:{job_name}"


class LeaseLock:
    """Time-bounded exclusive lease for one job name."""

    def __init__(self, redis: Redis, job_name: str, ttl_ms: Optional[int] = None):
        self.redis = redis
        self.job_name = job_name
        self.key = lock_key(job_name)
        self.ttl_ms = ttl_ms or settings.LOCK_TTL_MS
        self.token = f"{socket.gethostname()}-{os.getpid()}-{uuid.uuid4().hex[:8]}"
        self.lost = asyncio.Event()
        self._renew = redis.register_script(RENEW_SCRIPT)
        self._release = redis.register_script(RELEASE_SCRIPT)

    async def acquire(self) -> bool:
        acquired = await self.redis.set(self.key, self.token, nx=True, px=self.ttl_ms)
        if acquired:
            self.lost.clear()
            logger.debug(f"Acquired lease {self.key}")
        return bool(acquired)

    async def renew(self) -> bool:
        """Extend the lease. False means it was lost to expiry or another holder."""
        return bool(await self._renew(keys=[self.key], args=[self.token, self.ttl_ms]))

    async def release(self) -> bool:
        return bool(await self._release(keys=[self.key], args=[self.token]))

    async def confirm(self) -> bool:
        """
        Check that the lease is still ours right before a destructive step.

        Renews it as a side effect. A failed or unreachable check marks the
        lease as lost.
        """
        if self.lost.is_set():
            return False
        try:
            held = await self.renew()
        except Exception as e:
            logger.warning(f"Lease {self.key} check failed: {e}")
            held = False
        if not held:
            self._mark_lost()
        return held

    @asynccontextmanager
    async def hold(self) -> AsyncIterator["LeaseLock"]:
        """
        Hold the lease for the duration of the block, renewing it in the
        background every third of the TTL.

        The block must stop mutating shared state once ``lost`` is set.

        Raises:
            LockNotAcquiredError: If another instance holds the lease
        """
        if not await self.acquire():
            raise LockNotAcquiredError(self.job_name)

        heartbeat = asyncio.create_task(self._heartbeat(), name=f"lease-{self.job_name}")
        try:
            yield self
        finally:
            heartbeat.cancel()
            try:
                await heartbeat
            except asyncio.CancelledError:
                pass
            try:
                await self.release()
            except Exception as e:
                logger.warning(f"Failed to release lease {self.key}: {e}")

    def _mark_lost(self) -> None:
        if not self.lost.is_set():
            logger.warning(f"Lease {self.key} lost before the job finished")
        self.lost.set()

    async def _heartbeat(self) -> None:
        interval = self.ttl_ms / 3000
        while not self.lost.is_set():
            await asyncio.sleep(interval)
            try:
                if not await self.renew():
                    self._mark_lost()
            except Exception as e:
                logger.warning(f"Lease {self.key} renewal failed: {e}")
