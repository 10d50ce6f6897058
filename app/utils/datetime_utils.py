"""
Datetime utilities.

Timezone-aware helpers; every timestamp stored by the app is UTC.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC datetime with timezone info."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_iso_datetime(raw: str) -> datetime:
    """
    Parse an ISO-8601 timestamp from a client payload.

    Accepts a trailing ``Z``. Raises ValueError on malformed input.
    """
    value = raw.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(value))


def hours_until(target: datetime, now: datetime | None = None) -> float:
    """Hours between now and target (negative when target is past)."""
    current = now or utc_now()
    return (ensure_utc(target) - current).total_seconds() / 3600
