"""
Payment Retry Service - Statistics Module.

Module: stats.py
Retry statistics and per-profile listings.
"""

import uuid

from app.models.payment import PaymentRetry


class RetryStatsManager:
    """Retry statistics management."""

    def __init__(self, retry_repo, session) -> None:
        self.retry_repo = retry_repo
        self.session = session

    async def get_retry_stats(self) -> dict:
        """
        Get retry statistics.

        Returns:
            Dict with pending/DLQ/resolved counts and open amounts
        """
        stats = await self.retry_repo.get_stats()
        return {
            "pending_retries": stats["pending"],
            "dlq_items": stats["dlq"],
            "resolved_retries": stats["resolved"],
            "total_amount": stats["total_amount"],
            "dlq_amount": stats["dlq_amount"],
        }

    async def get_profile_retries(
        self, profile_id: uuid.UUID
    ) -> list[PaymentRetry]:
        return await self.retry_repo.find_by(
            profile_id=profile_id, resolved=False
        )
