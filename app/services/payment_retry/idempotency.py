"""
Payment Retry - Idempotency Module.

Module: idempotency.py
Deterministic idempotency keys and in-flight request deduplication.

A double-clicked "Pay" button produces two requests with the same key.
Inside one process the second request awaits the first one's result.
Across processes the key is claimed in Redis with SET NX EX and the loser
gets DuplicateRequestError.
"""

import asyncio
import hashlib
import json
import math
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger
from redis.asyncio import Redis

from app.config.constants import (
    IDEMPOTENCY_KEY_HASH_LENGTH,
    IDEMPOTENCY_WINDOW_SECONDS,
)
from app.utils.exceptions import DuplicateRequestError


T = TypeVar("T")

REDIS_KEY_PREFIX = "idempotency:"


def _canonical_json(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def generate_idempotency_key(
    user_id: str,
    operation: str,
    payload: Any,
    window_seconds: int = IDEMPOTENCY_WINDOW_SECONDS,
    now: float | None = None,
) -> str:
    """
    Derive an idempotency key for a user action.

    The SHA-256 input is ``user_id|operation|canonical_json(payload)|bucket``
    where bucket = floor(now / window_seconds). Identical requests in the
    same time bucket get the same key.

    Returns:
        ``"<operation>_<16 hex chars>"``
    """
    if window_seconds <= 0:
        raise ValueError("window_seconds must be positive")

    current = now if now is not None else time.time()
    bucket = math.floor(current / window_seconds)
    material = f"{user_id}|{operation}|{_canonical_json(payload)}|{bucket}"
    digest = hashlib.sha256(material.encode()).hexdigest()
    return f"{operation}_{digest[:IDEMPOTENCY_KEY_HASH_LENGTH]}"


class IdempotencyGuard:
    """
    Single-flight execution per idempotency key.

    Completed results are remembered for ``ttl_seconds`` so a duplicate
    submit right after success gets the cached result. Failures are not
    cached: the key is released so the user can try again.
    """

    def __init__(
        self,
        redis_client: Redis | None = None,
        ttl_seconds: int = IDEMPOTENCY_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._in_flight: dict[str, asyncio.Future] = {}
        self._results: dict[str, tuple[float, Any]] = {}

    def _prune(self, now: float) -> None:
        expired = [k for k, (until, _) in self._results.items() if until <= now]
        for key in expired:
            del self._results[key]

    async def _claim(self, key: str) -> bool:
        if self.redis is None:
            return False
        claimed = await self.redis.set(
            f"{REDIS_KEY_PREFIX}{key}", "1", nx=True, ex=self.ttl_seconds
        )
        if not claimed:
            raise DuplicateRequestError(
                "An identical request is already being processed",
                idempotency_key=key,
            )
        return True

    async def _release(self, key: str) -> None:
        if self.redis is None:
            return
        await self.redis.delete(f"{REDIS_KEY_PREFIX}{key}")

    async def run(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Execute ``operation`` once per key.

        Args:
            key: Idempotency key
            operation: Zero-argument coroutine factory

        Returns:
            Result of the (shared) execution

        Raises:
            DuplicateRequestError: Another process holds the key
        """
        now = self._clock()
        self._prune(now)

        cached = self._results.get(key)
        if cached is not None:
            logger.info(f"Idempotent replay for {key}")
            return cached[1]

        pending = self._in_flight.get(key)
        if pending is not None:
            logger.info(f"Joining in-flight request {key}")
            return await asyncio.shield(pending)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        claimed = False

        try:
            claimed = await self._claim(key)
            result = await operation()
        except BaseException as e:
            if isinstance(e, asyncio.CancelledError):
                future.cancel()
            else:
                future.set_exception(e)
                # Mark retrieved; waiters (if any) still receive it
                future.exception()
            if claimed:
                await self._release(key)
            raise
        finally:
            self._in_flight.pop(key, None)

        future.set_result(result)
        self._results[key] = (self._clock() + self.ttl_seconds, result)
        return result

    def clear(self) -> None:
        self._results.clear()


# Singleton instance
_guard: IdempotencyGuard | None = None


def get_idempotency_guard() -> IdempotencyGuard:
    """Get the process-wide guard (in-process only until initialized)."""
    global _guard
    if _guard is None:
        _guard = IdempotencyGuard()
    return _guard


def init_idempotency_guard(
    redis_client: Redis | None, ttl_seconds: int = IDEMPOTENCY_WINDOW_SECONDS
) -> IdempotencyGuard:
    """Initialize the process-wide guard with a Redis client."""
    global _guard
    _guard = IdempotencyGuard(redis_client, ttl_seconds)
    return _guard
