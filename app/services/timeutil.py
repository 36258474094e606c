"""Timestamp helpers. All stored times are UTC."""
from datetime import date, datetime, timezone
from typing import Optional, Union

TimestampInput = Union[str, int, float, datetime, date]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo), convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    value = ensure_utc(value)
    return value.isoformat() if value else None


def parse_publish_time(value: TimestampInput) -> datetime:
    """Parse an ISO-8601 string, epoch milliseconds, date or datetime into aware UTC.

    Raises ValueError when the value is missing or cannot be parsed.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("scheduled_publish_time is required")

    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise ValueError(f"Invalid scheduled_publish_time: {value!r}")
    if isinstance(value, (int, float)):
        # JavaScript clients send epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise ValueError(f"Invalid scheduled_publish_time: {value!r}") from None

    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid scheduled_publish_time: {value!r}") from None
    return ensure_utc(parsed)
