"""
Payment Retry - Backoff Module.

Module: backoff.py
In-request retry of gateway calls with exponential backoff and jitter.
Only transient failures are retried: network errors, timeouts, 408, 429
and 5xx. Any other 4xx is the caller's fault and fails immediately.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import aiohttp
from loguru import logger

from app.config.constants import (
    PAYMENT_RETRY_INITIAL_DELAY_SECONDS,
    PAYMENT_RETRY_JITTER_FACTOR,
    PAYMENT_RETRY_MAX_DELAY_SECONDS,
    PAYMENT_RETRY_MAX_RETRIES,
    PAYMENT_RETRY_MULTIPLIER,
    RETRYABLE_CLIENT_STATUSES,
)
from app.utils.exceptions import PaymentGatewayError


T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Backoff parameters. ``max_retries`` counts total attempts."""

    max_retries: int = PAYMENT_RETRY_MAX_RETRIES
    initial_delay: float = PAYMENT_RETRY_INITIAL_DELAY_SECONDS
    max_delay: float = PAYMENT_RETRY_MAX_DELAY_SECONDS
    multiplier: float = PAYMENT_RETRY_MULTIPLIER
    jitter_factor: float = PAYMENT_RETRY_JITTER_FACTOR

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.initial_delay <= 0 or self.max_delay <= 0:
            raise ValueError("delays must be positive")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if not 0 <= self.jitter_factor <= 1:
            raise ValueError("jitter_factor must be within [0, 1]")

    @classmethod
    def from_settings(cls) -> "RetryConfig":
        from app.config.settings import settings

        return cls(
            max_retries=settings.payment_retry_max_retries,
            initial_delay=settings.payment_retry_initial_delay,
            max_delay=settings.payment_retry_max_delay,
            multiplier=settings.payment_retry_multiplier,
            jitter_factor=settings.payment_retry_jitter,
        )


def calculate_delay(
    attempt: int,
    config: RetryConfig,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Delay to wait after a failed attempt.

    Formula: min(max_delay, initial * multiplier^(attempt-1)) * (1 + jitter)
    where jitter is uniform in [0, jitter_factor].

    Args:
        attempt: 1-based number of the attempt that just failed
        config: Backoff parameters
        rng: Uniform [0, 1) source

    Returns:
        Delay in seconds
    """
    if attempt < 1:
        raise ValueError("attempt is 1-based")

    exponential = config.initial_delay * (config.multiplier ** (attempt - 1))
    capped = min(config.max_delay, exponential)
    jitter = rng() * config.jitter_factor
    return capped * (1 + jitter)


def is_retryable_status(status: int) -> bool:
    """
    Whether an HTTP status from the gateway is worth retrying.

    Examples:
        >>> is_retryable_status(503)
        True
        >>> is_retryable_status(429)
        True
        >>> is_retryable_status(400)
        False
    """
    return status in RETRYABLE_CLIENT_STATUSES or 500 <= status <= 599


def is_retryable_error(error: BaseException) -> bool:
    """Classify an exception raised by a gateway call."""
    if isinstance(error, PaymentGatewayError):
        if error.status_code is None:
            return True
        return is_retryable_status(error.status_code)
    return isinstance(error, (aiohttp.ClientError, asyncio.TimeoutError))


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    *,
    operation_name: str = "payment operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> T:
    """
    Run ``operation`` until it succeeds or attempts run out.

    Args:
        operation: Zero-argument coroutine factory (called once per attempt)
        config: Backoff parameters (defaults from constants)
        operation_name: Label for log lines
        sleep: Awaitable sleep (injectable for tests)
        rng: Jitter source

    Returns:
        Result of the first successful attempt

    Raises:
        The last error once attempts are exhausted, or immediately when
        the error is not retryable.
    """
    cfg = config or RetryConfig()

    for attempt in range(1, cfg.max_retries + 1):
        try:
            return await operation()
        except Exception as e:
            if not is_retryable_error(e):
                logger.warning(
                    f"{operation_name} failed with non-retryable error: {e}"
                )
                raise

            if attempt >= cfg.max_retries:
                logger.error(
                    f"{operation_name} failed after {attempt} attempts: {e}"
                )
                raise

            delay = calculate_delay(attempt, cfg, rng)
            logger.warning(
                f"{operation_name} attempt {attempt}/{cfg.max_retries} "
                f"failed: {e}. Retrying in {delay:.2f}s",
                extra={"attempt": attempt, "delay": delay},
            )
            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("retry loop exited without result")
