"""Redis connection utilities.

Helpers for building Redis clients and URLs from settings.
"""

import redis.asyncio as redis

from app.config.settings import settings


async def get_redis_client() -> redis.Redis:
    """
    Create a Redis client from settings (decode_responses=True).

    Example:
        >>> redis_client = await get_redis_client()
        >>> await redis_client.set("key", "value")
        >>> await redis_client.aclose()
    """
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )


def get_redis_url() -> str:
    """
    Build Redis URL from settings (used by the Dramatiq broker).

    WARNING: contains the password in plaintext. Use get_redis_url_masked()
    for logging.
    """
    if settings.redis_password:
        return f"redis://:{settings.redis_password}@{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
    return f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"


def get_redis_url_masked() -> str:
    """Redis URL with the password replaced by asterisks."""
    if settings.redis_password:
        return f"redis://:****@{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
    return f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
