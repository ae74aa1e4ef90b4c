"""
Time zone normalisation helpers.

Every calendar computation in the engine happens in the provider's own IANA
timezone. These helpers project instants into that zone, build zoned instants
from a calendar date plus an ``HH:mm`` clock time, and parse clock strings.
"""

import re
from datetime import date, datetime
from typing import Tuple, Union

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidDateFormat, InvalidTimeFormat, InvalidTimezone

CLOCK_TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

MINUTES_PER_DAY = 24 * 60

CalendarDateLike = Union[str, date, datetime]


def ensure_timezone(name: str) -> str:
    """
    Validate an IANA timezone name.

    Returns:
        The name unchanged.

    Raises:
        InvalidTimezone: If pendulum does not know the zone.
    """
    if not name:
        raise InvalidTimezone("Timezone must not be empty")
    try:
        pendulum.timezone(name)
    except (ValueError, KeyError) as exc:
        raise InvalidTimezone(f"{name} is not a valid timezone") from exc
    return name


def parse_clock_time(value: str) -> Tuple[int, int]:
    """
    Parse a strict ``HH:mm`` clock time into ``(hour, minute)``.

    Single-digit hours (``9:30``) are accepted, anything past ``23:59`` is not.
    """
    if not isinstance(value, str) or not CLOCK_TIME_PATTERN.match(value):
        raise InvalidTimeFormat(f"Invalid time format: {value!r} (expected HH:mm)")
    hour, minute = value.split(":")
    return int(hour), int(minute)


def clock_minutes(value: str) -> int:
    """Minutes since midnight for an ``HH:mm`` clock time."""
    hour, minute = parse_clock_time(value)
    return hour * 60 + minute


def to_local_date(value: CalendarDateLike, timezone: str) -> Date:
    """
    Resolve a calendar date in the provider's timezone.

    Instants are projected into ``timezone`` (naive datetimes count as UTC);
    plain dates and ``YYYY-MM-DD`` strings are taken as-is.
    """
    if isinstance(value, datetime):
        return pendulum.instance(value).in_timezone(timezone).date()

    if isinstance(value, date):
        return pendulum.date(value.year, value.month, value.day)

    try:
        parsed = pendulum.parse(value, tz=timezone, exact=True)
    except (ValueError, TypeError) as exc:
        raise InvalidDateFormat(f"Could not parse date: {value!r}") from exc

    if isinstance(parsed, DateTime):
        return parsed.in_timezone(timezone).date()
    if isinstance(parsed, date):
        return pendulum.date(parsed.year, parsed.month, parsed.day)

    raise InvalidDateFormat(f"Not a calendar date: {value!r}")


def normalize_date(value: CalendarDateLike, timezone: str) -> str:
    """Project ``value`` into ``timezone`` and return its ``YYYY-MM-DD`` date."""
    return to_local_date(value, timezone).isoformat()


def combine_date_time(calendar_date: CalendarDateLike, clock_time: str, timezone: str) -> DateTime:
    """
    Build a zoned instant from a calendar date and an ``HH:mm`` clock time.

    Raises:
        InvalidTimeFormat: If the clock time is malformed or out of range.
    """
    hour, minute = parse_clock_time(clock_time)
    local = to_local_date(calendar_date, timezone)

    return pendulum.datetime(
        local.year,
        local.month,
        local.day,
        hour,
        minute,
        tz=timezone,
    )


def iso_week(value: CalendarDateLike, timezone: str) -> int:
    """ISO-8601 week number of the local calendar date."""
    return to_local_date(value, timezone).week_of_year


def to_instant(value: datetime, timezone: str) -> DateTime:
    """Convert any datetime to a pendulum instant in ``timezone``."""
    return pendulum.instance(value).in_timezone(timezone)


def localize(value: datetime, timezone: str) -> DateTime:
    """
    Attach ``timezone`` to a stored datetime.

    Naive values are wall-clock times in ``timezone``; aware values are
    converted into it.
    """
    if value.tzinfo is None:
        return pendulum.datetime(
            value.year,
            value.month,
            value.day,
            value.hour,
            value.minute,
            value.second,
            tz=timezone,
        )
    return to_instant(value, timezone)
