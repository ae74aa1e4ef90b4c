"""
Validation of a day's time windows and of whole availability rulesets.

Runs on every create or update of a rule or specific date. Each check raises
the first problem it finds; nothing is corrected silently.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from .exceptions import (
    InconsistentOvernightFlag,
    InsufficientTravelBuffer,
    MissingTimeSlots,
    OverlappingWindows,
    WeekNumberOutOfRange,
    ZeroLengthWindow,
)
from .models import DayRule, ProviderSchedule, TimeWindow

logger = logging.getLogger(__name__)

MIN_WEEK = 1
MAX_WEEK = 53


def validate_windows(windows: Sequence[TimeWindow]) -> None:
    """
    Validate one day's windows.

    Per window: zero length, then overnight-flag consistency. Across windows
    (sorted by start, overnight ends pushed to the next day): overlaps, then
    the travel buffer between neighbours. Touching windows are fine.
    """
    for window in windows:
        _validate_single_window(window)

    ordered = _sorted_by_start(windows)

    for current, following in zip(ordered, ordered[1:]):
        if current.effective_end_minutes > following.start_minutes:
            raise OverlappingWindows(
                f"Time slots overlap or have invalid boundaries: {current} and {following}"
            )
        _check_buffer_between(current, following)


def check_travel_buffers(windows: Sequence[TimeWindow]) -> None:
    """Run only the travel-buffer check across temporally adjacent windows."""
    ordered = _sorted_by_start(windows)

    for current, following in zip(ordered, ordered[1:]):
        _check_buffer_between(current, following)


def validate_weeks(weeks: Optional[Iterable[int]]) -> None:
    """Ensure every week number of an alternating-week selector is within 1-53."""
    if not weeks:
        return

    invalid = [week for week in weeks if not MIN_WEEK <= week <= MAX_WEEK]
    if invalid:
        raise WeekNumberOutOfRange(
            f"Week numbers must be between {MIN_WEEK} and {MAX_WEEK}, got {invalid}"
        )


def validate_day_rule(rule: DayRule) -> None:
    """Validate a rule's windows, week selector and specific-date overrides."""
    if not rule.time_slots:
        raise MissingTimeSlots(f"At least one time slot is required for {rule.day_of_week.value}")

    validate_weeks(rule.weeks)
    validate_windows(rule.time_slots)

    for specific in rule.specific_dates:
        if not specific.time_slots:
            raise MissingTimeSlots(
                f"At least one time slot is required for {specific.date.isoformat()}"
            )
        validate_windows(specific.time_slots)


def validate_rules(rules: Sequence[DayRule]) -> None:
    """Validate a full ruleset, stopping at the first invalid rule."""
    for rule in rules:
        validate_day_rule(rule)
    logger.debug("Validated %d availability rule(s)", len(rules))


def validate_schedule(schedule: ProviderSchedule) -> None:
    """Validate every rule of a provider schedule."""
    validate_rules(schedule.rules)


def _validate_single_window(window: TimeWindow) -> None:
    start = window.start_minutes
    end = window.end_minutes

    if start == end:
        raise ZeroLengthWindow(
            f"Time slot cannot start and end at the same time: {window}"
        )

    if end < start and not window.spans_overnight:
        raise InconsistentOvernightFlag(
            f"Time slot {window} spans overnight but spans_overnight is false"
        )

    if end >= start and window.spans_overnight:
        raise InconsistentOvernightFlag(
            f"Time slot {window} is marked as overnight but times are within the same day"
        )


def _check_buffer_between(current: TimeWindow, following: TimeWindow) -> None:
    if not (current.requires_travel_time or following.requires_travel_time):
        return

    gap = following.start_minutes - current.effective_end_minutes
    required = max(current.buffer_minutes, following.buffer_minutes)

    if gap < required:
        raise InsufficientTravelBuffer(
            f"Insufficient travel buffer between slots: {current} and {following}. "
            f"Required: {required} minutes, Found: {gap} minutes"
        )


def _sorted_by_start(windows: Sequence[TimeWindow]) -> List[TimeWindow]:
    return sorted(windows, key=lambda window: window.start_minutes)
