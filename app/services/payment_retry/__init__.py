"""
Payment Retry Service - Main Module.

Retry-with-backoff for payment gateway calls, idempotency keys, and
persisted retries with a Dead Letter Queue (DLQ).

Module Structure:
- constants.py: Persisted retry constants
- backoff.py: In-request exponential backoff and retry classification
- idempotency.py: Idempotency keys and in-flight deduplication
- core.py: Retry record creation and scheduling
- processor.py: Batch retry processing
- payment_handler.py: Gateway execution for one retry
- dlq_manager.py: Dead Letter Queue operations
- stats.py: Statistics

Public Interface:
- PaymentRetryService: facade over the persisted retry components
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.payment_gateway import RazorpayGateway

from .backoff import (
    RetryConfig,
    calculate_delay,
    is_retryable_error,
    is_retryable_status,
    retry_with_backoff,
)
from .core import PaymentRetryCore
from .dlq_manager import DLQManager
from .idempotency import (
    IdempotencyGuard,
    generate_idempotency_key,
    get_idempotency_guard,
    init_idempotency_guard,
)
from .processor import PaymentRetryProcessor
from .stats import RetryStatsManager


class PaymentRetryService:
    """Persisted payment retries with exponential backoff and DLQ."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

        self.core = PaymentRetryCore(session)
        self.processor = PaymentRetryProcessor(self.core)
        self.dlq_manager = DLQManager(self.core.retry_repo, session)
        self.stats_manager = RetryStatsManager(self.core.retry_repo, session)

        self.retry_repo = self.core.retry_repo

    async def create_retry_record(self, *args, **kwargs):
        """Create retry record for a failed gateway operation."""
        return await self.core.create_retry_record(*args, **kwargs)

    async def process_pending_retries(self, gateway: RazorpayGateway) -> dict:
        return await self.processor.process_pending_retries(gateway)

    async def get_dlq_items(self, limit: int = 100):
        return await self.dlq_manager.get_dlq_items(limit)

    async def retry_dlq_item(self, retry_id: uuid.UUID, gateway: RazorpayGateway):
        """Manually retry DLQ item (supervisor action)."""
        return await self.dlq_manager.retry_dlq_item(retry_id, gateway, self.core)

    async def get_retry_stats(self):
        return await self.stats_manager.get_retry_stats()

    async def get_profile_retries(self, profile_id: uuid.UUID):
        return await self.stats_manager.get_profile_retries(profile_id)


__all__ = [
    "IdempotencyGuard",
    "PaymentRetryService",
    "RetryConfig",
    "calculate_delay",
    "generate_idempotency_key",
    "get_idempotency_guard",
    "init_idempotency_guard",
    "is_retryable_error",
    "is_retryable_status",
    "retry_with_backoff",
]
