"""
Periodic task scheduler.

APScheduler only enqueues; the dramatiq worker does the work. Run with
``python -m jobs.scheduler``.
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from app.config.settings import settings
from app.logging_setup import setup_logging
from jobs.health import start_health_server, stop_health_server
from jobs.tasks import (
    expire_stale_quotes,
    process_payment_retries,
    prune_push_subscriptions,
)


def create_scheduler() -> AsyncIOScheduler:
    """Scheduler with every periodic job registered (not started)."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        process_payment_retries.send,
        "interval",
        minutes=1,
        id="payment_retry",
        name="Process payment retries",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        expire_stale_quotes.send,
        "interval",
        minutes=15,
        id="quote_expiry",
        name="Expire stale quotes",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        prune_push_subscriptions.send,
        "cron",
        hour=3,
        id="push_cleanup",
        name="Prune stale push subscriptions",
        coalesce=True,
    )
    return scheduler


async def run() -> None:
    scheduler = create_scheduler()
    scheduler.start()
    runner = await start_health_server(scheduler, port=settings.health_check_port)
    logger.info(f"Scheduler started with {len(scheduler.get_jobs())} jobs")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await stop.wait()
    finally:
        logger.info("Stopping scheduler...")
        scheduler.shutdown(wait=False)
        await stop_health_server(runner)


def main() -> None:
    setup_logging("scheduler")
    asyncio.run(run())


if __name__ == "__main__":
    main()
