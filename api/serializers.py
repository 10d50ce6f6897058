"""
JSON helpers.

ORM rows are rendered from their loaded column attributes only, so a
response never triggers lazy IO.
"""

import json
import uuid
from dataclasses import asdict, is_dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from functools import partial
from typing import Any

from aiohttp import web
from sqlalchemy import inspect

from app.models.base import Base


# Columns never sent to clients
HIDDEN_COLUMNS = frozenset({
    "card_token_encrypted",
    "p256dh",
    "auth",
    "error_stack",
    "idempotency_key",
})


def _default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Base):
        return model_to_dict(value)
    if is_dataclass(value) and not isinstance(value, type):
        to_dict = getattr(value, "to_dict", None)
        return to_dict() if callable(to_dict) else asdict(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


dumps = partial(json.dumps, default=_default)


def model_to_dict(
    obj: Base, exclude: frozenset[str] = HIDDEN_COLUMNS
) -> dict[str, Any]:
    """Loaded column values of an ORM row."""
    state = inspect(obj)
    unloaded = state.unloaded
    return {
        attr.key: getattr(obj, attr.key)
        for attr in state.mapper.column_attrs
        if attr.key not in unloaded and attr.key not in exclude
    }


def json_response(
    data: Any, status: int = 200, headers: dict[str, str] | None = None
) -> web.Response:
    return web.json_response(data, status=status, headers=headers, dumps=dumps)
