"""
API entry point.

Run with ``python -m api.main``.
"""

from aiohttp import web
from loguru import logger

from api.app import create_app
from app.config.database import async_session_maker, engine
from app.config.settings import settings
from app.logging_setup import setup_logging
from app.services.payment_gateway import get_payment_gateway
from app.services.payment_retry import init_idempotency_guard
from app.utils.redis_utils import get_redis_client, get_redis_url_masked


async def build_app() -> web.Application:
    redis_client = await get_redis_client()
    init_idempotency_guard(redis_client, settings.idempotency_window_seconds)
    gateway = get_payment_gateway()

    app = create_app(
        async_session_maker, redis_client=redis_client, gateway=gateway
    )

    async def on_cleanup(_: web.Application) -> None:
        logger.info("Shutting down API...")
        await gateway.close()
        await redis_client.aclose()
        await engine.dispose()

    app.on_cleanup.append(on_cleanup)
    logger.info(f"Redis: {get_redis_url_masked()}")
    return app


def main() -> None:
    setup_logging("api")
    web.run_app(build_app(), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
