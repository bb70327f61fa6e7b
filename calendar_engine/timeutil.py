"""
Timestamp normalization helpers.

Every instant handled by the engine is a timezone-aware UTC datetime.
Timestamps that arrive without tzinfo are assumed to be UTC; callers get
that decision back (``assumed_utc``) so it can be surfaced on results.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from calendar_engine.errors import ValidationError
from calendar_engine.logging_config import get_logger

logger = get_logger(__name__)

UTC = timezone.utc


def ensure_utc(value: datetime, field: str = "timestamp") -> tuple[datetime, bool]:
    """
    Normalize a datetime to aware UTC.

    Args:
        value: Aware or naive datetime
        field: Name used in logs and validation errors

    Returns:
        (utc_datetime, assumed_utc) where assumed_utc is True when the
        input carried no tzinfo and UTC was assumed.
    """
    if not isinstance(value, datetime):
        raise ValidationError(f"expected datetime, got {type(value).__name__}", field=field)

    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        logger.warning("naive_timestamp_assumed_utc", field=field, value=value.isoformat())
        return value.replace(tzinfo=UTC), True

    return value.astimezone(UTC), False


def to_utc(value: datetime) -> datetime:
    """Normalize without reporting whether UTC was assumed."""
    return ensure_utc(value)[0]


def get_zone(name: str | None) -> ZoneInfo:
    """Resolve an IANA zone name; None and "" mean UTC."""
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"unknown timezone {name!r}", field="timezone") from e


def local_to_utc(day: date, at: time, zone: ZoneInfo) -> datetime:
    """Interpret a wall-clock time on ``day`` in ``zone`` and return UTC."""
    return datetime.combine(day, at, tzinfo=zone).astimezone(UTC)


def start_of_day_utc(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def daterange(first: date, last: date):
    """Yield every calendar date from ``first`` to ``last`` inclusive."""
    current = first
    while current <= last:
        yield current
        current += timedelta(days=1)


__all__ = [
    "UTC",
    "daterange",
    "ensure_utc",
    "get_zone",
    "local_to_utc",
    "start_of_day_utc",
    "to_utc",
]
