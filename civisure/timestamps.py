"""
CiviSure - Timestamp Utilities

All timestamps stored in the database are naive UTC.
"""

from datetime import datetime, timezone, timedelta


def now_utc() -> datetime:
    """Return the current time as naive UTC (compatible with database datetimes).

    Non-deprecated replacement for the old utcnow pattern.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Longest trailing window accepted by the map feed and analytics
MAX_WINDOW_DAYS = 36500


def days_ago(days: int) -> datetime:
    """Naive UTC cutoff for trailing-window queries, capped at MAX_WINDOW_DAYS."""
    return now_utc() - timedelta(days=min(days, MAX_WINDOW_DAYS))


def to_naive_utc(dt: datetime) -> datetime:
    """Normalise an incoming datetime (naive or aware) to naive UTC."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat_utc(dt: datetime) -> str:
    """Format a naive UTC datetime as an ISO-8601 string with a Z suffix."""
    return dt.isoformat(timespec="milliseconds") + "Z"
