"""
Datetime utilities.

Provides timezone-aware datetime functions and reset period helpers.
"""

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def period_start(now: datetime | None = None, reset_hour: int = 0) -> datetime:
    """
    Get start of the reset period containing now.

    The period starts at the latest reset_hour:00 UTC boundary that is not
    after now.

    Args:
        now: Reference time (defaults to current UTC time)
        reset_hour: UTC hour at which a period begins (0-23)

    Returns:
        Period start, timezone-aware UTC
    """
    current = ensure_utc(now or utc_now())
    start = current.replace(hour=reset_hour, minute=0, second=0, microsecond=0)
    if start > current:
        start -= timedelta(days=1)
    return start


def period_date(now: datetime | None = None, reset_hour: int = 0) -> str:
    """Period bucket key (YYYY-MM-DD) of the period containing now."""
    return period_start(now, reset_hour).date().isoformat()
