"""Date and timezone helper functions for EventSeries."""

import logging
from datetime import date, datetime, time, tzinfo
from typing import Optional

import pytz

logger = logging.getLogger(__name__)


def get_timezone_aware_now(user_timezone: Optional[str] = None) -> datetime:
    """Get current datetime with timezone awareness.

    Args:
        user_timezone: Optional timezone string (e.g., 'America/Los_Angeles').
                      If None or invalid, UTC is used.

    Returns:
        Current datetime in the requested timezone
    """
    utc_now = datetime.now(pytz.utc)
    if user_timezone is None:
        return utc_now

    try:
        return utc_now.astimezone(pytz.timezone(user_timezone))
    except pytz.UnknownTimeZoneError as e:
        logger.warning(f"Invalid timezone '{user_timezone}', falling back to UTC: {e}")
        return utc_now


def ensure_timezone_aware(dt: datetime, default_tz: Optional[str] = None) -> datetime:
    """Ensure datetime is timezone-aware.

    Args:
        dt: Datetime to check
        default_tz: Timezone name used for naive datetimes (UTC if None)

    Returns:
        Timezone-aware datetime
    """
    if dt.tzinfo is not None:
        return dt
    tz = pytz.timezone(default_tz) if default_tz else pytz.utc
    return tz.localize(dt)


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Look up a timezone by name, returning None for unknown names."""
    if not name:
        return None
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone '{name}', keeping event offsets as given")
        return None


def combine_in_timezone(day: date, time_of_day: time, tz: Optional[tzinfo] = None) -> datetime:
    """Put a wall-clock time on a calendar date in ``tz``.

    pytz zones must go through ``localize`` to pick the offset in force on
    ``day``; attaching them directly would keep the template's offset across
    a DST change.
    """
    naive = datetime.combine(day, time_of_day.replace(tzinfo=None))
    if tz is None:
        return naive
    localize = getattr(tz, "localize", None)
    if localize is not None:
        return localize(naive)
    return naive.replace(tzinfo=tz)

