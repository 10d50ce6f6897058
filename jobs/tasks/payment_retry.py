"""
Payment retry task.

Retries persisted gateway operations with exponential backoff (1min,
2min, 4min, 8min, 16min) and moves them to the DLQ after 5 attempts.
Runs every minute.
"""

import dramatiq
from loguru import logger
from redis.exceptions import RedisError

from app.config.constants import LOCK_TIMEOUT_LONG
from app.services.payment_gateway import RazorpayGateway
from app.services.payment_retry import PaymentRetryService
from app.utils.distributed_lock import DistributedLock
from app.utils.redis_utils import get_redis_client
from jobs.async_runner import create_local_session, run_async


@dramatiq.actor(max_retries=3, time_limit=300_000)  # 5 min timeout
def process_payment_retries() -> None:
    """Process due payment retries."""
    logger.info("Starting payment retry processing...")

    try:
        stats = run_async(_process_payment_retries_async())
        logger.info(f"Payment retry processing complete: {stats}")
    except Exception as e:
        logger.exception(f"Payment retry processing failed: {e}")
        raise


async def _process_payment_retries_async() -> dict | None:
    redis_client = None
    try:
        redis_client = await get_redis_client()
    except (RedisError, ConnectionError) as e:
        logger.warning(f"Failed to create Redis client for lock: {e}")

    lock = DistributedLock(redis_client=redis_client)
    # Own client: the gateway's HTTP session is bound to this event loop
    gateway = RazorpayGateway.from_settings()

    try:
        async with lock.lock(
            "payment_retry_processing", timeout=LOCK_TIMEOUT_LONG
        ) as held:
            if not held:
                return None
            async with create_local_session() as session:
                retry_service = PaymentRetryService(session)
                return await retry_service.process_pending_retries(gateway)
    finally:
        await gateway.close()
        if redis_client:
            await redis_client.aclose()
