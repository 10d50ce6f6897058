"""
Quote expiry task.

Sent quotes past ``valid_until`` become expired; their projects return
to analysis for a fresh quote. Runs every 15 minutes.
"""

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.project import ProjectService
from app.utils.db_decorators import with_auto_commit
from jobs.async_runner import create_local_session, run_async


@dramatiq.actor(max_retries=3, time_limit=120_000)
def expire_stale_quotes() -> None:
    logger.info("Starting quote expiry...")
    try:
        expired = run_async(_expire_stale_quotes_async())
        logger.info(f"Quote expiry complete: {expired} expired")
    except Exception as e:
        logger.exception(f"Quote expiry failed: {e}")
        raise


@with_auto_commit
async def _expire_in_session(session: AsyncSession) -> int:
    return await ProjectService(session).expire_stale_quotes()


async def _expire_stale_quotes_async() -> int:
    async with create_local_session() as session:
        return await _expire_in_session(session)
