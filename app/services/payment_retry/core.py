"""
Payment Retry Service - Core Module.

Module: core.py
Creates and reschedules persisted retry records for gateway operations
that still failed after in-request retries.
"""

import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import RetryOperation
from app.models.payment import PaymentRetry
from app.repositories.payment_repository import (
    PaymentRepository,
    PaymentRetryRepository,
)
from app.utils.datetime_utils import utc_now

from .backoff import RetryConfig, calculate_delay
from .constants import (
    BASE_RETRY_DELAY_SECONDS,
    DEFAULT_MAX_RETRIES,
    MAX_RETRY_DELAY_SECONDS,
)


# Same formula as in-request retries, on a minutes scale
PERSISTED_RETRY_CONFIG = RetryConfig(
    max_retries=DEFAULT_MAX_RETRIES,
    initial_delay=BASE_RETRY_DELAY_SECONDS,
    max_delay=MAX_RETRY_DELAY_SECONDS,
)


class PaymentRetryCore:
    """Core retry record management."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.retry_repo = PaymentRetryRepository(session)
        self.payment_repo = PaymentRepository(session)

    async def create_retry_record(
        self,
        profile_id: uuid.UUID,
        operation: RetryOperation,
        payload: dict[str, Any],
        amount: Decimal,
        idempotency_key: str,
        error: str,
        payment_id: uuid.UUID | None = None,
        error_stack: str | None = None,
    ) -> PaymentRetry:
        """
        Create (or refresh) the retry record for a failed gateway operation.

        An unresolved record with the same idempotency key is updated in
        place instead of duplicated.

        Args:
            profile_id: Profile the money belongs to
            operation: Gateway operation to re-run
            payload: Arguments for the operation (JSON-serializable)
            amount: Amount in rupees (for reporting)
            idempotency_key: Key of the original request
            error: Last error message
            payment_id: Related Payment row
            error_stack: Traceback text (optional)

        Returns:
            PaymentRetry record
        """
        logger.info(
            f"Creating retry record for profile {profile_id}, "
            f"operation {operation.value}, amount {amount} INR",
            extra={"idempotency_key": idempotency_key},
        )

        existing = await self.retry_repo.get_by_idempotency_key(idempotency_key)

        if existing:
            await self.retry_repo.update(
                existing.id,
                payload=payload,
                amount=amount,
                last_error=error,
                error_stack=error_stack,
            )
            logger.info(f"Updated existing retry record {existing.id}")
            return existing

        next_retry_at = self.calculate_next_retry_time(0)
        retry = await self.retry_repo.create(
            profile_id=profile_id,
            payment_id=payment_id,
            operation=operation.value,
            payload=payload,
            idempotency_key=idempotency_key,
            amount=amount,
            attempt_count=0,
            max_retries=DEFAULT_MAX_RETRIES,
            next_retry_at=next_retry_at,
            last_error=error,
            error_stack=error_stack,
            in_dlq=False,
            resolved=False,
        )

        logger.info(
            f"Created new retry record {retry.id}, "
            f"next retry at: {next_retry_at.isoformat()}"
        )
        return retry

    def calculate_next_retry_time(
        self, attempt_count: int, now: datetime | None = None
    ) -> datetime:
        """
        Next retry time using exponential backoff with jitter.

        attempt_count=0 (fresh record) waits one base delay; each further
        failed attempt doubles it (1min, 2min, 4min, 8min, 16min).
        """
        delay = calculate_delay(attempt_count + 1, PERSISTED_RETRY_CONFIG)
        return (now or utc_now()) + timedelta(seconds=delay)
