"""
Distributed lock on Redis.

Keeps periodic jobs from running concurrently on several workers. Without
a Redis client the lock degrades to a process-local asyncio lock.
"""

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.config.constants import DISTRIBUTED_LOCK_TIMEOUT


# Delete only if we still own the key
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

_local_locks: dict[str, asyncio.Lock] = {}


class DistributedLock:
    """Non-blocking named lock: a second holder skips instead of waiting."""

    def __init__(
        self, redis_client: Redis | None = None, prefix: str = "lock:"
    ) -> None:
        self.redis = redis_client
        self.prefix = prefix

    async def _acquire(self, key: str, token: str, timeout: int) -> bool:
        try:
            return bool(await self.redis.set(key, token, nx=True, ex=timeout))
        except (RedisError, ConnectionError, TimeoutError) as e:
            logger.warning(f"Lock {key} unavailable, running unlocked: {e}")
            return True

    async def _release(self, key: str, token: str) -> None:
        try:
            await self.redis.eval(_RELEASE_SCRIPT, 1, key, token)
        except (RedisError, ConnectionError, TimeoutError) as e:
            logger.warning(f"Failed to release lock {key}: {e}")

    @asynccontextmanager
    async def lock(
        self, name: str, timeout: int = DISTRIBUTED_LOCK_TIMEOUT
    ) -> AsyncIterator[bool]:
        """
        Hold ``name`` for at most ``timeout`` seconds.

        Yields:
            True if this caller holds the lock, False if someone else does
        """
        if self.redis is None:
            local = _local_locks.setdefault(name, asyncio.Lock())
            if local.locked():
                yield False
                return
            async with local:
                yield True
            return

        key = f"{self.prefix}{name}"
        token = uuid.uuid4().hex
        acquired = await self._acquire(key, token, timeout)
        if not acquired:
            logger.info(f"Lock {name} held elsewhere, skipping")
            yield False
            return

        try:
            yield True
        finally:
            await self._release(key, token)
