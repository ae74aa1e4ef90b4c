"""
Resolution of a provider's effective schedule for a calendar date.

Precedence is: specific-date override, then exception blackout, then the
first matching recurring rule (filtered by its alternating-week selector).
Exceptions only gate the recurring path; a specific-date override stays
bookable even on an exception date.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence, Tuple

from .models import DayOfWeek, DayRule, ProviderSchedule, TimeWindow
from .time_utils import CalendarDateLike, combine_date_time, iso_week, normalize_date, to_instant

logger = logging.getLogger(__name__)


def is_alternate_week(date: CalendarDateLike, weeks: Sequence[int], timezone: str) -> bool:
    """
    Check whether ``date`` falls on an active week of an alternating roster.

    The roster starts at ``min(weeks)`` and repeats every second ISO week.
    """
    current_week = iso_week(date, timezone)
    week_diff = current_week - min(weeks)
    return week_diff >= 0 and week_diff % 2 == 0


def get_day_availability(
    rules: Sequence[DayRule],
    day_of_week: DayOfWeek,
    date: CalendarDateLike,
    exceptions: Iterable[CalendarDateLike] = (),
    timezone: str = "UTC",
) -> Optional[DayRule]:
    """
    Find the recurring rule that applies on ``date``.

    Returns None when the date is an exception or no rule matches. The first
    matching rule wins; rules are never merged.
    """
    date_str = normalize_date(date, timezone)

    if any(normalize_date(exception, timezone) == date_str for exception in exceptions):
        logger.debug("Date %s is an exception, no recurring availability", date_str)
        return None

    for rule in rules:
        if rule.day_of_week != day_of_week:
            continue
        if rule.weeks and not is_alternate_week(date, rule.weeks, timezone):
            continue
        return rule

    return None


def get_specific_date_availability(
    rules: Sequence[DayRule],
    date: CalendarDateLike,
    timezone: str = "UTC",
) -> Optional[Tuple[TimeWindow, ...]]:
    """Return the windows of the first specific-date override matching ``date``."""
    date_str = normalize_date(date, timezone)

    for rule in rules:
        for specific in rule.specific_dates:
            if normalize_date(specific.date, timezone) == date_str:
                return specific.time_slots

    return None


def resolve_day_windows(schedule: ProviderSchedule, date: CalendarDateLike) -> Tuple[TimeWindow, ...]:
    """
    Resolve the windows a provider offers on ``date``.

    Returns an empty tuple when the provider is unavailable that day.
    """
    timezone = schedule.timezone

    specific = get_specific_date_availability(schedule.rules, date, timezone)
    if specific is not None:
        logger.debug("Using specific-date override for %s", normalize_date(date, timezone))
        return specific

    rule = get_day_availability(
        schedule.rules,
        DayOfWeek.from_date(date, timezone),
        date,
        schedule.exceptions,
        timezone,
    )
    if rule is None:
        return ()

    return rule.time_slots


def is_time_available(
    schedule: ProviderSchedule,
    start: datetime,
    end: datetime,
    location_id: Optional[str] = None,
) -> bool:
    """
    Check whether ``[start, end)`` lies inside one of the provider's windows.

    Windows are resolved for the start's local date, plus the overnight
    windows of the previous day whose tail runs past midnight. Overnight
    windows extend into the next day and travel windows are shrunk by their
    buffer at both ends. A window without a location accepts any requested
    location.
    """
    timezone = schedule.timezone
    start = to_instant(start, timezone)
    end = to_instant(end, timezone)

    local_date = start.date()
    previous_date = local_date.subtract(days=1)

    candidates = [(local_date, window) for window in resolve_day_windows(schedule, local_date)]
    candidates.extend(
        (previous_date, window)
        for window in resolve_day_windows(schedule, previous_date)
        if window.spans_overnight
    )

    for window_date, window in candidates:
        if location_id and window.location_id and window.location_id != location_id:
            continue

        window_start = combine_date_time(window_date, window.start_time, timezone)
        window_end = combine_date_time(window_date, window.end_time, timezone)
        if window.spans_overnight:
            window_end = window_end.add(days=1)

        if window.requires_travel_time:
            window_start = window_start.add(minutes=window.buffer_minutes)
            window_end = window_end.subtract(minutes=window.buffer_minutes)

        if window_start <= start and end <= window_end:
            return True

    return False
