"""Request parsing helpers shared by route modules."""

import json
import uuid
from decimal import Decimal
from typing import Any

from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession

from app.utils.datetime_utils import parse_iso_datetime
from app.utils.exceptions import NotFoundError, ValidationError
from app.validators import validate_amount, validate_uuid


def session_of(request: web.Request) -> AsyncSession:
    return request["session"]


def caller(request: web.Request) -> uuid.UUID:
    return request["profile_id"]


async def read_json(request: web.Request) -> dict[str, Any]:
    """Request body as a JSON object (empty body -> {})."""
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise ValidationError("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def path_uuid(request: web.Request, name: str) -> uuid.UUID:
    """UUID path parameter; malformed ids are treated as unknown."""
    valid, value, _ = validate_uuid(request.match_info.get(name))
    if not valid:
        raise NotFoundError("Not found")
    return value


def body_uuid(body: dict[str, Any], name: str) -> uuid.UUID:
    valid, value, _ = validate_uuid(body.get(name))
    if not valid:
        raise ValidationError(f"'{name}' must be a valid id")
    return value


def query_int(
    request: web.Request, name: str, default: int, maximum: int = 100
) -> int:
    raw = request.query.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValidationError(f"'{name}' must be an integer") from e
    return min(max(value, 0), maximum)


def query_decimal(request: web.Request, name: str) -> Decimal | None:
    raw = request.query.get(name)
    if raw is None or raw == "":
        return None
    valid, value, error = validate_amount(raw)
    if not valid:
        raise ValidationError(f"'{name}': {error}")
    return value


def query_datetime(request: web.Request, name: str):
    raw = request.query.get(name)
    if not raw:
        return None
    try:
        return parse_iso_datetime(raw)
    except ValueError as e:
        raise ValidationError(f"'{name}' must be an ISO-8601 timestamp") from e


def enum_value(enum_cls, raw: Any, field: str):
    """Parse an enum member from its value, or raise ValidationError."""
    try:
        return enum_cls(raw)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"'{field}' must be one of: {allowed}") from e


def payment_service_for(request: web.Request):
    """PaymentService bound to the request session and the app gateway."""
    from api.keys import GATEWAY
    from app.services.payment_service import PaymentService

    return PaymentService(session_of(request), gateway=request.app.get(GATEWAY))


async def require_role(request: web.Request, *roles: str):
    """Caller's profile, provided it has one of ``roles``."""
    from app.repositories.profile_repository import ProfileRepository
    from app.utils.exceptions import PermissionDeniedError

    profile = await ProfileRepository(session_of(request)).get_by_id(caller(request))
    if profile is None or profile.role not in roles:
        raise PermissionDeniedError("Not allowed")
    return profile
