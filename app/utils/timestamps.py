"""Timestamp helpers.

Database audit rows are written in UTC; "today" for expiration checks and the
timestamps in status lines are taken in the configured tenant timezone.
"""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

STATUS_TIMESTAMP_FORMAT = "%m/%d/%Y %I:%M:%S %p"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Example:
        >>> utc_now().tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def local_now(tz: ZoneInfo, now: Optional[datetime] = None) -> datetime:
    """Current time converted to ``tz``.

    Args:
        tz: Target timezone
        now: Reference instant (defaults to utc_now()); naive values are UTC

    Returns:
        Timezone-aware datetime in ``tz``
    """
    reference = now or utc_now()
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    return reference.astimezone(tz)


def local_today(tz: ZoneInfo, now: Optional[datetime] = None) -> date:
    """Calendar date in ``tz``."""
    return local_now(tz, now).date()


def format_status_timestamp(dt: datetime) -> str:
    """Format a timestamp for status lines, e.g. ``01/15/2025 09:05:00 AM``."""
    return dt.strftime(STATUS_TIMESTAMP_FORMAT)
