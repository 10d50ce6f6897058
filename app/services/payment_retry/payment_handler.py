"""
Payment Retry Service - Payment Handler Module.

Module: payment_handler.py
Re-runs a single persisted gateway operation and records the outcome.
"""

from typing import Any

from loguru import logger

from app.models.enums import PaymentStatus, RetryOperation
from app.models.payment import PaymentRetry
from app.services.payment_gateway import RazorpayGateway
from app.utils.datetime_utils import utc_now

from .backoff import is_retryable_error


class PaymentRetryHandler:
    """Gateway execution and bookkeeping for one retry."""

    def __init__(self, retry_core) -> None:
        self.retry_core = retry_core
        self.retry_repo = retry_core.retry_repo
        self.payment_repo = retry_core.payment_repo
        self.session = retry_core.session

    async def process_retry(
        self, retry: PaymentRetry, gateway: RazorpayGateway
    ) -> dict:
        """
        Process single retry attempt.

        Returns:
            Dict with success and moved_to_dlq flags
        """
        logger.info(
            f"Processing retry {retry.id} ({retry.operation}), "
            f"attempt {retry.attempt_count + 1}/{retry.max_retries}"
        )

        await self.retry_repo.update(
            retry.id,
            attempt_count=retry.attempt_count + 1,
            last_attempt_at=utc_now(),
        )

        try:
            result = await self._execute(retry, gateway)
        except Exception as e:
            return await self._handle_failure(retry, e)

        return await self._handle_success(retry, result)

    async def _execute(
        self, retry: PaymentRetry, gateway: RazorpayGateway
    ) -> dict[str, Any]:
        payload = retry.payload or {}

        if retry.operation == RetryOperation.CREATE_REFUND.value:
            return await gateway.create_refund(
                payload["gateway_payment_id"],
                int(payload["amount_paise"]),
                notes=payload.get("notes"),
            )

        raise ValueError(f"Unsupported retry operation: {retry.operation}")

    async def _handle_success(
        self, retry: PaymentRetry, result: dict[str, Any]
    ) -> dict:
        reference = result.get("id")
        logger.info(f"Payment retry {retry.id} succeeded, reference {reference}")

        await self.retry_repo.update(
            retry.id,
            resolved=True,
            resolved_at=utc_now(),
            next_retry_at=None,
            gateway_reference=reference,
        )

        if retry.payment_id and retry.operation == RetryOperation.CREATE_REFUND.value:
            await self.payment_repo.update(
                retry.payment_id, status=PaymentStatus.REFUNDED.value
            )

        await self.session.commit()

        logger.info(
            "Payment retry succeeded",
            extra={
                "retry_id": str(retry.id),
                "attempt_count": retry.attempt_count,
            },
        )
        return {"success": True, "moved_to_dlq": False}

    async def _handle_failure(
        self, retry: PaymentRetry, error: Exception
    ) -> dict:
        error_msg = str(error)
        logger.error(
            f"Retry {retry.id} attempt {retry.attempt_count} failed: {error_msg}"
        )

        await self.retry_repo.update(retry.id, last_error=error_msg)

        # A rejected request (4xx) will not succeed on replay
        if retry.attempt_count >= retry.max_retries or not is_retryable_error(error):
            from .dlq_manager import DLQManager
            dlq_manager = DLQManager(self.retry_repo, self.session)
            return await dlq_manager.move_to_dlq(retry)

        next_retry = self.retry_core.calculate_next_retry_time(retry.attempt_count)
        await self.retry_repo.update(retry.id, next_retry_at=next_retry)

        logger.info(
            f"Retry {retry.id} scheduled for next attempt at: {next_retry.isoformat()}"
        )

        await self.session.commit()
        return {"success": False, "moved_to_dlq": False}
