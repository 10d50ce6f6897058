"""
Health check server for the scheduler process.

``/health`` lists scheduled jobs, ``/readiness`` and ``/liveness`` serve
orchestrator probes.
"""

import asyncio

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

SCHEDULER = web.AppKey("scheduler", AsyncIOScheduler)


async def health_handler(request: web.Request) -> web.Response:
    """Scheduler state and next run time of every job."""
    scheduler = request.app[SCHEDULER]
    jobs = scheduler.get_jobs()
    return web.json_response(
        {
            "status": "healthy" if scheduler.running else "stopped",
            "scheduler_running": scheduler.running,
            "jobs_count": len(jobs),
            "jobs": [
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": (
                        job.next_run_time.isoformat() if job.next_run_time else None
                    ),
                }
                for job in jobs
            ],
        },
        status=200 if scheduler.running else 503,
    )


async def readiness_handler(request: web.Request) -> web.Response:
    ready = request.app[SCHEDULER].running
    return web.json_response(
        {"status": "ready" if ready else "not_ready", "ready": ready},
        status=200 if ready else 503,
    )


async def liveness_handler(request: web.Request) -> web.Response:
    return web.json_response({"status": "alive", "alive": True})


def create_health_app(scheduler: AsyncIOScheduler) -> web.Application:
    app = web.Application()
    app[SCHEDULER] = scheduler
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(
    scheduler: AsyncIOScheduler,
    host: str = "0.0.0.0",
    port: int = 8081,
) -> web.AppRunner:
    """
    Start the health server.

    Returns:
        AppRunner to pass to stop_health_server
    """
    runner = web.AppRunner(create_health_app(scheduler))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on {host}:{port}")
    return runner


async def stop_health_server(runner: web.AppRunner, timeout: int = 5) -> None:
    """Stop the health server, giving up after ``timeout`` seconds."""
    logger.info("Stopping health check server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
