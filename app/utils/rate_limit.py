"""
Fixed-window rate limiter backed by Redis.

One counter per ``(bucket, client_id, window)``; INCR + EXPIRE make the
counter self-cleaning.
"""

import time
from dataclasses import dataclass

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.config.constants import RATE_LIMIT_WINDOW_SECONDS


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check."""

    success: bool
    limit: int
    remaining: int
    reset_at: int  # Unix seconds when the window rolls over

    def headers(self) -> dict[str, str]:
        """X-RateLimit-* response headers."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }

    def retry_after(self, now: float | None = None) -> int:
        current = int(now if now is not None else time.time())
        return max(0, self.reset_at - current)


class RateLimiter:
    """
    Redis fixed-window rate limiter.

    Fails open when Redis is unavailable: a cache outage must not take the
    payment API down with it. The failure is logged.
    """

    def __init__(
        self,
        redis_client: Redis,
        bucket: str,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
    ) -> None:
        self.redis = redis_client
        self.bucket = bucket
        self.window_seconds = window_seconds

    def _key(self, client_id: str, window_index: int) -> str:
        return f"ratelimit:{self.bucket}:{client_id}:{window_index}"

    async def check(
        self, limit: int, client_id: str, now: float | None = None
    ) -> RateLimitResult:
        """
        Count one request for client_id and report whether it is allowed.

        Args:
            limit: Max requests per window
            client_id: Caller identity (profile id, optionally with IP)
            now: Current unix time (tests)

        Returns:
            RateLimitResult
        """
        current = now if now is not None else time.time()
        window_index = int(current // self.window_seconds)
        reset_at = (window_index + 1) * self.window_seconds
        key = self._key(client_id, window_index)

        try:
            count = await self.redis.incr(key)
            if count == 1:
                await self.redis.expire(key, self.window_seconds)
        except RedisError as e:
            logger.error(f"Rate limiter unavailable for {self.bucket}: {e}")
            return RateLimitResult(
                success=True, limit=limit, remaining=limit, reset_at=reset_at
            )

        remaining = max(0, limit - count)
        return RateLimitResult(
            success=count <= limit,
            limit=limit,
            remaining=remaining,
            reset_at=reset_at,
        )


def get_client_identifier(
    profile_id: object | None, remote_ip: str | None = None
) -> str:
    """
    Rate limit identity.

    Authenticated callers are keyed on the profile alone, so one user
    shares a budget across addresses. The IP only keys anonymous calls.
    """
    if profile_id:
        return str(profile_id)
    return f"ip:{remote_ip or 'unknown'}"
