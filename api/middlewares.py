"""
Request middlewares.

Order (outermost first): errors, origin check, auth, rate limit,
database session. Handlers find the session in ``request["session"]``.
"""

from aiohttp import web
from loguru import logger
from sqlalchemy.exc import IntegrityError

from api.keys import CONFIG, REDIS, SESSION_MAKER
from api.serializers import json_response
from app.config.constants import (
    PAYMENT_READ_LIMIT_PER_MINUTE,
    PAYMENT_WRITE_LIMIT_PER_MINUTE,
)
from app.utils.csrf import SAFE_METHODS, validate_origin
from app.utils.exceptions import (
    AssignXError,
    RateLimitExceededError,
    SecurityError,
)
from app.utils.rate_limit import RateLimiter, get_client_identifier


RATE_LIMITED_PREFIXES = ("/api/payments", "/api/payment-methods", "/api/wallet")


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Map domain errors to JSON responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except AssignXError as e:
        headers = None
        if isinstance(e, RateLimitExceededError):
            headers = {"Retry-After": str(e.retry_after)}
        if e.http_status >= 500:
            logger.warning(f"{request.method} {request.path} failed: {e.message}")
        return json_response(e.to_dict(), status=e.http_status, headers=headers)
    except IntegrityError as e:
        logger.warning(
            f"{request.method} {request.path} conflict: {type(e.orig).__name__}"
        )
        return json_response(
            {"error": "conflict", "message": "Request conflicts with existing data"},
            status=409,
        )
    except Exception as e:
        logger.exception(f"Unhandled error on {request.method} {request.path}: {e}")
        return json_response(
            {"error": "internal_error", "message": "Internal server error"},
            status=500,
        )


@web.middleware
async def origin_middleware(request: web.Request, handler):
    """Reject state-changing requests from origins not on the allow list."""
    if request.method not in SAFE_METHODS:
        valid, error = validate_origin(
            request.method,
            request.headers,
            request.app[CONFIG].allowed_origins,
        )
        if not valid:
            raise SecurityError(error or "Invalid request origin")
    return await handler(request)


@web.middleware
async def rate_limit_middleware(request: web.Request, handler):
    """Fixed-window limits on money routes (writes 5/min, reads 10/min)."""
    redis_client = request.app.get(REDIS)
    if redis_client is None or not request.path.startswith(RATE_LIMITED_PREFIXES):
        return await handler(request)

    is_write = request.method not in SAFE_METHODS
    limiter = RateLimiter(
        redis_client, "payment_write" if is_write else "payment_read"
    )
    limit = (
        PAYMENT_WRITE_LIMIT_PER_MINUTE if is_write else PAYMENT_READ_LIMIT_PER_MINUTE
    )
    client_id = get_client_identifier(request.get("profile_id"), request.remote)
    result = await limiter.check(limit, client_id)

    if not result.success:
        error = RateLimitExceededError(
            "Too many requests. Please try again later.",
            retry_after=result.retry_after(),
        )
        logger.info(f"Rate limit hit on {request.path} by {request['profile_id']}")
        return json_response(
            error.to_dict(),
            status=error.http_status,
            headers={**result.headers(), "Retry-After": str(error.retry_after)},
        )

    response = await handler(request)
    response.headers.update(result.headers())
    return response


@web.middleware
async def db_session_middleware(request: web.Request, handler):
    """
    One session per request; commit on success, roll back on failure.

    Errors flagged ``commit_on_error`` still commit what was written before
    raising (moderation audit rows for blocked messages).
    """
    if request.path == "/health":
        return await handler(request)

    async with request.app[SESSION_MAKER]() as session:
        request["session"] = session
        try:
            response = await handler(request)
        except AssignXError as e:
            if e.commit_on_error:
                await session.commit()
            else:
                await session.rollback()
            raise
        except Exception:
            await session.rollback()
            raise
        await session.commit()
        return response
