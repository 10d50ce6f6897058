"""Typed application keys shared by the app factory, middlewares and routes."""

from dataclasses import dataclass, field

from aiohttp import web
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.services.payment_gateway import RazorpayGateway


@dataclass(frozen=True)
class ApiConfig:
    """Per-application security configuration."""

    jwt_secret: str
    jwt_audience: str = "authenticated"
    allowed_origins: list[str] = field(default_factory=list)

    @classmethod
    def from_settings(cls) -> "ApiConfig":
        from app.config.settings import settings

        return cls(
            jwt_secret=settings.supabase_jwt_secret,
            jwt_audience=settings.supabase_jwt_audience,
            allowed_origins=settings.get_allowed_origins(),
        )


CONFIG = web.AppKey("config", ApiConfig)
SESSION_MAKER = web.AppKey("session_maker", async_sessionmaker)
REDIS = web.AppKey("redis", Redis)
GATEWAY = web.AppKey("gateway", RazorpayGateway)
