"""
Push subscription cleanup.

Drops Web Push subscriptions with no successful delivery in 60 days.
Runs daily.
"""

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.notification import NotificationService
from app.utils.db_decorators import with_auto_commit
from jobs.async_runner import create_local_session, run_async


@dramatiq.actor(max_retries=1, time_limit=120_000)
def prune_push_subscriptions() -> None:
    try:
        removed = run_async(_prune_async())
        logger.info(f"Push cleanup complete: {removed} removed")
    except Exception as e:
        logger.exception(f"Push cleanup failed: {e}")
        raise


@with_auto_commit
async def _prune_in_session(session: AsyncSession) -> int:
    return await NotificationService(session).prune_stale()


async def _prune_async() -> int:
    async with create_local_session() as session:
        return await _prune_in_session(session)
