"""
Database decorators for automatic commit and rollback.

Wrap async service methods so the surrounding session is committed on
success and rolled back on any exception. The session is looked up in the
``session`` keyword, the first positional argument, or the ``session``
attribute of ``self`` (service and repository instances).
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


def _find_session(args: tuple, kwargs: dict) -> AsyncSession | None:
    session = kwargs.get("session")
    if session is not None:
        return session

    if args:
        first = args[0]
        if isinstance(first, AsyncSession):
            return first
        owned = getattr(first, "session", None)
        if isinstance(owned, AsyncSession):
            return owned

    return None


async def _safe_rollback(session: AsyncSession, func_name: str, exc: Exception) -> None:
    try:
        await session.rollback()
        logger.info(
            f"Rollback performed in {func_name} due to error: {type(exc).__name__}"
        )
    except Exception as rollback_error:
        logger.error(
            f"Failed to rollback in {func_name}: {rollback_error}",
            exc_info=True
        )


def with_rollback_on_error(func: Callable[..., T]) -> Callable[..., T]:
    """
    Roll back the session on any exception, then re-raise.

    Example:
        @with_rollback_on_error
        async def transfer(self, ...):
            ...
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        session = _find_session(args, kwargs)

        if session is None:
            logger.warning(
                f"Function {func.__name__} decorated with @with_rollback_on_error "
                f"but no session found. Rollback will not be performed."
            )
            return await func(*args, **kwargs)

        try:
            return await func(*args, **kwargs)
        except Exception as e:
            await _safe_rollback(session, func.__name__, e)
            raise

    return wrapper


def with_auto_commit(func: Callable[..., T]) -> Callable[..., T]:
    """
    Commit the session on success, roll back on error.

    Used by background jobs, which own their session; API handlers rely on
    the per-request session middleware instead.
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        session = _find_session(args, kwargs)

        if session is None:
            logger.warning(
                f"Function {func.__name__} decorated with @with_auto_commit "
                f"but no session found. Commit/rollback will not be performed."
            )
            return await func(*args, **kwargs)

        try:
            result = await func(*args, **kwargs)
            await session.commit()
            logger.debug(f"Auto-commit performed in {func.__name__}")
            return result
        except Exception as e:
            await _safe_rollback(session, func.__name__, e)
            raise

    return wrapper
