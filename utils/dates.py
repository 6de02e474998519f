# couture/utils/dates.py

from calendar import monthrange
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Tuple


def is_timestamp_map(value: Any) -> bool:
    """
    True for the legacy shape {seconds: <number>, nanoseconds: <number>}
    that was written instead of a native timestamp.
    """
    if not isinstance(value, dict):
        return False
    seconds = value.get("seconds")
    nanos = value.get("nanoseconds")
    return (
        isinstance(seconds, (int, float)) and not isinstance(seconds, bool)
        and isinstance(nanos, (int, float)) and not isinstance(nanos, bool)
    )


def timestamp_from_map(value: dict) -> datetime:
    """
    Rebuild the instant from the `seconds` component (plus nanoseconds,
    truncated to microseconds). Always UTC.
    """
    base = datetime.fromtimestamp(int(value["seconds"]), tz=timezone.utc)
    micros = int(value.get("nanoseconds") or 0) // 1000
    return base + timedelta(microseconds=micros)


def coerce_datetime(value: Any) -> Optional[datetime]:
    """
    Best-effort conversion of a stored date value to an aware datetime.
    Returns None for missing or unparseable values.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if is_timestamp_map(value):
        return timestamp_from_map(value)
    if isinstance(value, str) and value.strip():
        text = value.strip().replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """First and last instant of a calendar month, UTC."""
    last_day = monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return start, end
