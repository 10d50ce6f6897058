"""
Dramatiq broker configuration.

Redis broker shared by the worker (``dramatiq jobs.tasks``) and the
scheduler that enqueues periodic tasks.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import CurrentMessage, Retries, ShutdownNotifications
from loguru import logger

from app.utils.redis_utils import get_redis_url, get_redis_url_masked

redis_broker = RedisBroker(url=get_redis_url())

# ShutdownNotifications: lets long tasks stop cleanly on worker shutdown
# Retries: exponential backoff for actors that raise
redis_broker.add_middleware(ShutdownNotifications())
redis_broker.add_middleware(CurrentMessage())
redis_broker.add_middleware(
    Retries(
        max_retries=3,
        min_backoff=1000,  # 1 second
        max_backoff=60000,  # 1 minute
    )
)

dramatiq.set_broker(redis_broker)

broker = redis_broker

logger.info(f"Dramatiq broker initialized: {get_redis_url_masked()}")
