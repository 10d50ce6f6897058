"""
Base service class.

Common functionality for service classes: session, bound logger,
ownership helpers and an operation-logging decorator.
"""

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.utils.exceptions import AssignXError, NotFoundError


T = TypeVar("T")


class BaseService:
    """
    Base service class.

    Services flush but never commit: the caller owns the transaction
    (request middleware in the API, ``with_auto_commit`` in jobs).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.logger = logger.bind(service=self.__class__.__name__)

    @staticmethod
    def _require(entity: T | None, message: str) -> T:
        """Return entity or raise NotFoundError."""
        if entity is None:
            raise NotFoundError(message)
        return entity


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """
    Log method exit with timing.

    Expected domain errors are logged at WARNING without a traceback;
    anything else at ERROR with one.
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        start_time = time.time()

        try:
            result = await func(self, *args, **kwargs)
        except AssignXError as e:
            self.logger.warning(
                f"Rejected {func.__name__}: {e.message}",
                extra={
                    "function": func.__name__,
                    "error_code": e.code,
                },
            )
            raise
        except Exception as e:
            self.logger.error(
                f"Failed {func.__name__}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": round(time.time() - start_time, 3),
                    "error": str(e),
                },
                exc_info=True,
            )
            raise

        self.logger.info(
            f"Completed {func.__name__}",
            extra={
                "function": func.__name__,
                "duration_seconds": round(time.time() - start_time, 3),
            },
        )
        return result

    return wrapper
