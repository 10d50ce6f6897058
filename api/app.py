"""
Application factory.

Collaborators (session factory, Redis, gateway) are injected so tests can
run the full middleware stack against mocks.
"""

from aiohttp import web
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import async_sessionmaker

from api.auth import auth_middleware
from api.keys import CONFIG, GATEWAY, REDIS, SESSION_MAKER, ApiConfig
from api.middlewares import (
    db_session_middleware,
    error_middleware,
    origin_middleware,
    rate_limit_middleware,
)
from api.routes import setup_routes
from api.serializers import json_response
from app.services.payment_gateway import RazorpayGateway


async def health_handler(request: web.Request) -> web.Response:
    return json_response({"status": "healthy"})


def create_app(
    session_maker: async_sessionmaker,
    config: ApiConfig | None = None,
    redis_client: Redis | None = None,
    gateway: RazorpayGateway | None = None,
) -> web.Application:
    """
    Build the API application.

    Args:
        session_maker: Async session factory (one session per request)
        config: Auth and origin settings (from settings when omitted)
        redis_client: Enables rate limits and moderation summary caching
        gateway: Payment gateway client (settings singleton when omitted)
    """
    app = web.Application(
        middlewares=[
            error_middleware,
            origin_middleware,
            auth_middleware,
            rate_limit_middleware,
            db_session_middleware,
        ]
    )
    app[CONFIG] = config or ApiConfig.from_settings()
    app[SESSION_MAKER] = session_maker
    if redis_client is not None:
        app[REDIS] = redis_client
    if gateway is not None:
        app[GATEWAY] = gateway

    app.router.add_get("/health", health_handler)
    setup_routes(app)
    return app
