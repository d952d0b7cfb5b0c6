# File: utils/dt_utils.py
"""Date and time utilities for Habit Trigger.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

⚠️ UTILS PURITY: NO `homeassistant.*` imports allowed.
   Uses standard library: datetime, zoneinfo.

Functions:
    - set_default_timezone / get_default_timezone: Calendar timezone for day math
    - dt_now_utc: Get current datetime in UTC
    - as_utc / as_local: Timezone conversion (naive input is assumed local / UTC)
    - dt_parse: Normalize datetime inputs to an aware datetime
    - time_of_day: Extract hour/minute/second of a datetime in local time
    - combine_local: Apply a time-of-day to a calendar date in local time
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time
import logging
from zoneinfo import ZoneInfo

_LOGGER = logging.getLogger(__name__)

# Default timezone - replaced by the integration with the HA configured zone
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this during integration setup to configure the user's timezone.

    Args:
        tz: ZoneInfo object representing the default timezone
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz
    _LOGGER.debug("Default timezone set to %s", tz)


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC timezone.

    Args:
        dt_obj: Datetime object. Naive values are assumed to be local time.

    Returns:
        Datetime in UTC timezone
    """
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone.

    Args:
        dt_obj: Datetime object. Naive values are assumed to be UTC.
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Datetime in local timezone
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz_info)


# ==============================================================================
# Parsing
# ==============================================================================


def dt_parse(
    dt_input: str | date | datetime | None,
    default_tzinfo: ZoneInfo | None = None,
) -> datetime | None:
    """Normalize string, date or datetime input to an aware datetime.

    Naive inputs are interpreted in `default_tzinfo` (DEFAULT_TIME_ZONE if
    not given). Dates become midnight of that day.

    Returns:
        Aware datetime, or None if the input could not be parsed.

    Example:
        >>> dt_parse("2025-04-15T09:00:00+00:00")
        datetime.datetime(2025, 4, 15, 9, 0, tzinfo=datetime.timezone.utc)
    """
    if not dt_input:
        return None

    tz_info = default_tzinfo or DEFAULT_TIME_ZONE
    result: datetime

    if isinstance(dt_input, str):
        try:
            result = datetime.fromisoformat(dt_input.strip())
        except ValueError:
            _LOGGER.debug("Unable to parse datetime string '%s'", dt_input)
            return None
    elif isinstance(dt_input, datetime):
        result = dt_input
    elif isinstance(dt_input, date):
        result = datetime.combine(dt_input, time.min)
    else:
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=tz_info)
    return result


# ==============================================================================
# Time-of-day helpers
# ==============================================================================


def time_of_day(dt_obj: datetime, tz: ZoneInfo | None = None) -> time:
    """Return the local wall-clock hour/minute/second of a datetime.

    The calendar date and sub-second precision are discarded.

    Example:
        datetime(2025, 1, 1, 8, 0, 12, 500) → time(8, 0, 12)
    """
    local_dt = as_local(dt_obj, tz)
    return time(local_dt.hour, local_dt.minute, local_dt.second)


def combine_local(day: date, tod: time, tz: ZoneInfo | None = None) -> datetime:
    """Build an aware local datetime for a wall-clock time on a calendar date."""
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.combine(day, tod.replace(tzinfo=None), tzinfo=tz_info)
