"""
Payment Retry Service - DLQ Manager Module.

Module: dlq_manager.py
Dead Letter Queue operations for retries that exhausted their attempts.
"""

import uuid

from loguru import logger

from app.models.payment import PaymentRetry
from app.services.payment_gateway import RazorpayGateway
from app.utils.datetime_utils import utc_now


class DLQManager:
    """Dead Letter Queue management."""

    def __init__(self, retry_repo, session) -> None:
        self.retry_repo = retry_repo
        self.session = session

    async def move_to_dlq(self, retry: PaymentRetry) -> dict:
        await self.retry_repo.update(retry.id, in_dlq=True, next_retry_at=None)

        logger.warning(
            f"Retry {retry.id} moved to DLQ after {retry.attempt_count} attempts"
        )

        await self.session.commit()
        return {"success": False, "moved_to_dlq": True}

    async def get_dlq_items(self, limit: int = 100) -> list[PaymentRetry]:
        """Unresolved DLQ items, newest first (for supervisor review)."""
        return await self.retry_repo.find_dlq(limit)

    async def retry_dlq_item(
        self, retry_id: uuid.UUID, gateway: RazorpayGateway, retry_core
    ) -> tuple[bool, str | None, str | None]:
        """
        Manually re-drive a DLQ item.

        Returns:
            Tuple of (success, gateway_reference, error_message)
        """
        retry = await self.retry_repo.get_for_update(retry_id)

        if not retry:
            return False, None, "Retry record not found"

        if retry.resolved:
            return False, None, "Payment already resolved"

        logger.info(f"Manual retry of DLQ item {retry_id}")

        await self.retry_repo.update(
            retry_id,
            in_dlq=False,
            attempt_count=0,
            next_retry_at=utc_now(),
        )
        await self.session.flush()

        from .payment_handler import PaymentRetryHandler
        handler = PaymentRetryHandler(retry_core)
        result = await handler.process_retry(retry, gateway)

        if result["success"]:
            return True, retry.gateway_reference, None
        return False, None, retry.last_error or "Retry failed"
