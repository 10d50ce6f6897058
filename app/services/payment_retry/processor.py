"""
Payment Retry Service - Processor Module.

Module: processor.py
Processes due retries in batches (called by the background job).
"""

import uuid

from loguru import logger

from app.services.payment_gateway import RazorpayGateway
from app.utils.datetime_utils import utc_now

from .constants import BATCH_LIMIT
from .payment_handler import PaymentRetryHandler


class PaymentRetryProcessor:
    """Retry processing logic."""

    def __init__(self, retry_core) -> None:
        self.retry_core = retry_core
        self.retry_repo = retry_core.retry_repo
        self.session = retry_core.session

    async def process_pending_retries(
        self, gateway: RazorpayGateway, limit: int = BATCH_LIMIT
    ) -> dict:
        """
        Process all due retries.

        Returns:
            Dict with processed, successful, failed, moved_to_dlq counts
        """
        pending = await self.retry_repo.find_pending_retries(utc_now(), limit)

        stats = self._create_empty_stats()
        if not pending:
            return stats

        logger.info(f"Processing {len(pending)} pending payment retries...")

        # A rollback expires the loaded rows; each one is re-read by id
        retry_ids = [retry.id for retry in pending]
        for retry_id in retry_ids:
            result = await self._process_single_retry_safe(retry_id, gateway)
            if result is None:
                continue
            stats["processed"] += 1
            stats[result] += 1

        logger.info(
            f"Retry processing complete: {stats['successful']} successful, "
            f"{stats['failed']} failed, {stats['moved_to_dlq']} moved to DLQ "
            f"out of {stats['processed']} total"
        )
        return stats

    async def _process_single_retry_safe(
        self, retry_id: uuid.UUID, gateway: RazorpayGateway
    ) -> str | None:
        """
        Process one retry; bookkeeping errors do not stop the batch.

        A record that fails outside the gateway call is rolled back, then
        charged one attempt in a fresh transaction so it backs off instead
        of blocking later runs.

        Returns:
            One of: 'successful', 'failed', 'moved_to_dlq', or None when
            the record was resolved elsewhere in the meantime
        """
        try:
            retry = await self.retry_repo.get_by_id(retry_id)
            if retry is None or retry.resolved or retry.in_dlq:
                return None
            handler = PaymentRetryHandler(self.retry_core)
            result = await handler.process_retry(retry, gateway)
        except Exception as e:
            logger.exception(f"Error processing retry {retry_id}: {e}")
            await self.session.rollback()
            await self._charge_failed_attempt(retry_id, e)
            return "failed"

        if result["success"]:
            return "successful"
        if result["moved_to_dlq"]:
            return "moved_to_dlq"
        return "failed"

    async def _charge_failed_attempt(
        self, retry_id: uuid.UUID, error: Exception
    ) -> None:
        try:
            retry = await self.retry_repo.get_by_id(retry_id)
            if retry is None:
                return
            attempts = retry.attempt_count + 1
            if attempts >= retry.max_retries:
                changes = {"in_dlq": True, "next_retry_at": None}
            else:
                changes = {
                    "next_retry_at": self.retry_core.calculate_next_retry_time(
                        attempts
                    )
                }
            await self.retry_repo.update(
                retry_id, attempt_count=attempts, last_error=str(error), **changes
            )
            await self.session.commit()
        except Exception as e:
            logger.exception(f"Failed to record error for retry {retry_id}: {e}")
            await self.session.rollback()

    @staticmethod
    def _create_empty_stats() -> dict:
        return {
            "processed": 0,
            "successful": 0,
            "failed": 0,
            "moved_to_dlq": 0,
        }
