"""
Guard against schedule edits that would orphan booked appointments.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from pendulum import Date

from .availability_resolver import get_day_availability, get_specific_date_availability
from .exceptions import SchedulingConflictError
from .models import BookedInterval, DayOfWeek, DayRule, TimeWindow
from .time_utils import MINUTES_PER_DAY, to_instant

logger = logging.getLogger(__name__)


def validate_update(
    old_rules: Sequence[DayRule],
    new_rules: Sequence[DayRule],
    existing_appointments: Sequence[BookedInterval],
    timezone: str = "UTC",
) -> None:
    """
    Reject a new ruleset that no longer covers every existing appointment.

    Each appointment is checked against the new ruleset's windows for its
    local date: a specific-date override if one exists, else the recurring
    rule (exceptions are not consulted). The appointment's wall-clock start
    and end, and its location, must fit one window exactly as written; travel
    buffers are not applied here. An appointment starting after midnight may
    also sit in the tail of the previous day's overnight window.

    ``old_rules`` is not consulted: every appointment is checked even when
    the ruleset is unchanged.

    Raises:
        SchedulingConflictError: Listing every uncovered appointment. Nothing
            is applied when this is raised.
    """
    conflicts: List[BookedInterval] = [
        appointment
        for appointment in existing_appointments
        if not _is_covered(new_rules, appointment, timezone)
    ]

    if conflicts:
        logger.info(
            "Rejecting schedule change: %d appointment(s) would lose coverage",
            len(conflicts),
        )
        details = ", ".join(
            f"{to_instant(c.start, timezone).format('YYYY-MM-DD HH:mm')}"
            f"-{to_instant(c.end, timezone).format('HH:mm')}"
            for c in conflicts
        )
        raise SchedulingConflictError(
            f"New schedule conflicts with existing appointments: {details}",
            conflicts=conflicts,
        )


def _is_covered(
    rules: Sequence[DayRule],
    appointment: BookedInterval,
    timezone: str,
) -> bool:
    start = to_instant(appointment.start, timezone)
    end = to_instant(appointment.end, timezone)

    # Wall-clock minutes from the start day's midnight
    start_minutes = start.hour * 60 + start.minute
    day_offset = end.date().toordinal() - start.date().toordinal()
    end_minutes = day_offset * MINUTES_PER_DAY + end.hour * 60 + end.minute

    local_date = start.date()
    if any(
        _covers(window, appointment.location_id, start_minutes, end_minutes)
        for window in _resolve_windows(rules, local_date, timezone)
    ):
        return True

    # After midnight, inside the tail of the previous day's overnight window
    return any(
        window.spans_overnight
        and _covers(
            window,
            appointment.location_id,
            start_minutes + MINUTES_PER_DAY,
            end_minutes + MINUTES_PER_DAY,
        )
        for window in _resolve_windows(rules, local_date.subtract(days=1), timezone)
    )


def _resolve_windows(
    rules: Sequence[DayRule],
    local_date: Date,
    timezone: str,
) -> Tuple[TimeWindow, ...]:
    specific = get_specific_date_availability(rules, local_date, timezone)
    if specific is not None:
        return specific

    rule = get_day_availability(
        rules,
        DayOfWeek.from_date(local_date, timezone),
        local_date,
        timezone=timezone,
    )
    return rule.time_slots if rule else ()


def _covers(
    window: TimeWindow,
    location_id: Optional[str],
    start_minutes: int,
    end_minutes: int,
) -> bool:
    if window.location_id != location_id:
        return False
    return window.start_minutes <= start_minutes and end_minutes <= window.effective_end_minutes
