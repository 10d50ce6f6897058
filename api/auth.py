"""
Bearer token authentication.

Tokens are issued by the hosted auth service: HS256 signed with the
project JWT secret, audience ``authenticated``, ``sub`` = profile id.
"""

import uuid

import jwt
from aiohttp import web
from loguru import logger

from api.keys import CONFIG
from app.utils.exceptions import AuthenticationError


PUBLIC_PATHS = frozenset({"/health"})


def parse_bearer(header: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer`` header."""
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def decode_token(token: str, secret: str, audience: str) -> uuid.UUID:
    """
    Verify a JWT and return the profile id it was issued for.

    Raises:
        AuthenticationError: Expired, tampered, wrong audience or bad subject
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=audience,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token expired") from e
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected token: {type(e).__name__}")
        raise AuthenticationError("Invalid token") from e

    try:
        return uuid.UUID(str(payload["sub"]))
    except ValueError as e:
        raise AuthenticationError("Invalid token subject") from e


@web.middleware
async def auth_middleware(request: web.Request, handler):
    """Attach ``request["profile_id"]`` for every non-public route."""
    if request.path in PUBLIC_PATHS or request.method == "OPTIONS":
        return await handler(request)

    token = parse_bearer(request.headers.get("Authorization"))
    if token is None:
        raise AuthenticationError("Missing bearer token")

    config = request.app[CONFIG]
    request["profile_id"] = decode_token(
        token, config.jwt_secret, config.jwt_audience
    )
    return await handler(request)
