"""Date parsing shared by merging and data-quality checks."""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime


def parse_date(value: str | None) -> datetime | None:
    """Parse an ISO 8601 or RFC 2822 date, or return None.

    Example:
        >>> parse_date("Mon, 01 Jan 2024 10:00:00 GMT").isoformat()
        '2024-01-01T10:00:00+00:00'
    """
    if not value or not value.strip():
        return None
    value = value.strip()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
