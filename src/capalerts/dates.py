"""CAP date-time handling.

CAP dates are ISO 8601 with a mandatory numeric offset and no ``Z``
designator, e.g. ``2002-05-24T16:49:00-07:00``.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

DATE_PATTERN = re.compile(
    r"(\d{4})-([01]\d)-([0-3]\d)T([0-2]\d):([0-5]\d):([0-5]\d)"
    r"(?:\.(\d{2,3}))?([+-])([01]\d):([0-5]\d)"
)


def to_datetime(value: str | None) -> datetime | None:
    """Parse a CAP date, returning None when it is malformed or out of range."""
    if value is None:
        return None
    match = DATE_PATTERN.fullmatch(value.strip())
    if match is None:
        return None
    year, month, day, hour, minute, second, fraction, sign, tz_hour, tz_minute = match.groups()
    offset = timedelta(hours=int(tz_hour), minutes=int(tz_minute))
    if sign == "-":
        offset = -offset
    microsecond = int(fraction.ljust(6, "0")) if fraction else 0
    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour),
            int(minute),
            int(second),
            microsecond,
            tzinfo=timezone(offset),
        )
    except ValueError:
        return None


def is_valid_date(value: str | None) -> bool:
    return to_datetime(value) is not None


def format_date(value: datetime) -> str:
    """Render a datetime as CAP text; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.replace(microsecond=0).isoformat()


def timezone_offset_minutes(value: str) -> int | None:
    parsed = to_datetime(value)
    if parsed is None:
        return None
    return int(parsed.utcoffset().total_seconds() // 60)
