"""
Core business logic for generating bookable time slots.

This is the heart of the engine - pure domain logic without any external
dependencies (no API calls, no database, no I/O).
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from pendulum import DateTime

from .exceptions import InvalidSlotRequest
from .models import BookedInterval, ResolvedSlot, TimeWindow
from .time_utils import CalendarDateLike, combine_date_time, to_instant
from .window_validator import check_travel_buffers

logger = logging.getLogger(__name__)


def generate_slots(
    date: CalendarDateLike,
    windows: Sequence[TimeWindow],
    duration: int,
    min_break: int = 0,
    only_at: Optional[datetime] = None,
    booked: Sequence[BookedInterval] = (),
    timezone: str = "UTC",
) -> List[ResolvedSlot]:
    """
    Produce every bookable slot of ``duration`` minutes within ``windows``.

    Algorithm:
    1. Check travel buffers between the windows (errors propagate)
    2. Turn each window into instants on ``date``, pushing overnight ends
       to the next day and shrinking travel windows by their buffer
    3. Step a cursor by ``duration + min_break`` from the window start, or
       test the single probe ``only_at`` when given
    4. Drop slots that overlap a booked interval
    5. Return the slots ordered by start

    Args:
        date: Calendar date the windows apply to
        windows: The resolved windows for that date
        duration: Appointment length in minutes
        min_break: Idle minutes between consecutive slots
        only_at: Optional probe instant; at most one slot is returned
        booked: Existing appointments that generated slots must not overlap
        timezone: Provider timezone

    Returns:
        List of ResolvedSlot objects ordered by start
    """
    if duration <= 0:
        raise InvalidSlotRequest(f"Duration must be greater than zero, got {duration}")
    if min_break < 0:
        raise InvalidSlotRequest(f"Minimum break cannot be negative, got {min_break}")

    check_travel_buffers(windows)

    probe = to_instant(only_at, timezone) if only_at is not None else None
    slots: List[ResolvedSlot] = []

    for window in windows:
        window_start, window_end = _window_bounds(date, window, timezone)

        if window_start >= window_end:
            logger.debug("Window %s leaves no time after travel buffers", window)
            continue

        if probe is not None:
            slot = _probe_window(probe, window_start, window_end, duration, booked, window)
            if slot is not None:
                slots.append(slot)
                break
            continue

        slots.extend(
            _iterate_window(window_start, window_end, duration, min_break, booked, window)
        )

    slots.sort(key=lambda slot: slot.start)
    logger.debug(
        "Generated %d slot(s) of %d min on %s from %d window(s)",
        len(slots), duration, date, len(windows)
    )
    return slots


def filter_windows_by_location(
    windows: Sequence[TimeWindow],
    location_id: Optional[str],
) -> List[TimeWindow]:
    """Keep only windows at ``location_id``; no filter when it is None."""
    if location_id is None:
        return list(windows)
    return [window for window in windows if window.location_id == location_id]


def _window_bounds(date: CalendarDateLike, window: TimeWindow, timezone: str):
    start = combine_date_time(date, window.start_time, timezone)
    end = combine_date_time(date, window.end_time, timezone)

    if window.spans_overnight:
        end = end.add(days=1)

    if window.requires_travel_time:
        start = start.add(minutes=window.buffer_minutes)
        end = end.subtract(minutes=window.buffer_minutes)

    return start, end


def _probe_window(
    probe: DateTime,
    window_start: DateTime,
    window_end: DateTime,
    duration: int,
    booked: Sequence[BookedInterval],
    window: TimeWindow,
) -> Optional[ResolvedSlot]:
    probe_end = probe.add(minutes=duration)

    if probe < window_start or probe_end > window_end:
        return None
    if _is_booked(probe, probe_end, booked):
        logger.debug("Requested slot %s overlaps an existing booking", probe)
        return None

    return ResolvedSlot(start=probe, end=probe_end, location_id=window.location_id)


def _iterate_window(
    window_start: DateTime,
    window_end: DateTime,
    duration: int,
    min_break: int,
    booked: Sequence[BookedInterval],
    window: TimeWindow,
) -> List[ResolvedSlot]:
    slots: List[ResolvedSlot] = []
    cursor = window_start

    while cursor.add(minutes=duration) <= window_end:
        slot_end = cursor.add(minutes=duration)

        if not _is_booked(cursor, slot_end, booked):
            slots.append(
                ResolvedSlot(start=cursor, end=slot_end, location_id=window.location_id)
            )

        cursor = cursor.add(minutes=duration + min_break)

    return slots


def _is_booked(start: DateTime, end: DateTime, booked: Sequence[BookedInterval]) -> bool:
    return any(interval.overlaps(start, end) for interval in booked)
