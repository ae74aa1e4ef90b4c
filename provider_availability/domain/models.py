"""
Domain models for provider schedules, time windows and slots.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pendulum import Date, DateTime

from .exceptions import InvalidTravelBuffer, ScheduleValidationError
from .time_utils import (
    MINUTES_PER_DAY,
    CalendarDateLike,
    clock_minutes,
    ensure_timezone,
    parse_clock_time,
    to_local_date,
)


class DayOfWeek(str, Enum):
    """Day of the week a recurring rule applies to."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_date(cls, value: CalendarDateLike, timezone: str) -> "DayOfWeek":
        """Weekday of ``value`` as seen in ``timezone``."""
        local = to_local_date(value, timezone)
        return list(cls)[local.isoweekday() - 1]


@dataclass(frozen=True)
class TimeWindow:
    """
    A contiguous bookable range within one day, possibly crossing midnight.

    Clock times are ``HH:mm`` strings. Whether ``spans_overnight`` agrees with
    the clock times is checked by the window validator, not here.
    """
    start_time: str
    end_time: str
    location_id: Optional[str] = None
    requires_travel_time: bool = False
    travel_buffer: Optional[int] = None
    spans_overnight: bool = False

    def __post_init__(self):
        parse_clock_time(self.start_time)
        parse_clock_time(self.end_time)

        if self.travel_buffer is not None and self.travel_buffer < 0:
            raise InvalidTravelBuffer("Travel buffer cannot be negative")
        if self.requires_travel_time and not self.travel_buffer:
            raise InvalidTravelBuffer(
                f"Travel buffer is required when requires_travel_time is true "
                f"({self.start_time}-{self.end_time})"
            )
        if self.travel_buffer and not self.requires_travel_time:
            raise InvalidTravelBuffer(
                f"Travel buffer is only allowed when requires_travel_time is true "
                f"({self.start_time}-{self.end_time})"
            )

    @property
    def start_minutes(self) -> int:
        return clock_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return clock_minutes(self.end_time)

    @property
    def effective_end_minutes(self) -> int:
        """End in minutes from the start day's midnight, past 24h when overnight."""
        if self.spans_overnight:
            return self.end_minutes + MINUTES_PER_DAY
        return self.end_minutes

    @property
    def buffer_minutes(self) -> int:
        return self.travel_buffer or 0

    def __str__(self) -> str:
        return f"{self.start_time}-{self.end_time}"


@dataclass(frozen=True)
class SpecificDate:
    """A one-off availability definition that overrides recurring rules."""
    date: Date
    time_slots: Tuple[TimeWindow, ...]


@dataclass(frozen=True)
class DayRule:
    """
    Availability rule for one day of the week.

    ``weeks`` turns the rule into an alternating-week roster: it applies only
    on ISO weeks an even distance from ``min(weeks)``.
    """
    day_of_week: DayOfWeek
    time_slots: Tuple[TimeWindow, ...]
    is_recurring: bool = True
    weeks: Optional[Tuple[int, ...]] = None
    specific_dates: Tuple[SpecificDate, ...] = ()


@dataclass(frozen=True)
class ProviderSchedule:
    """
    A provider's complete availability ruleset.

    Instances are never edited in place; the ``with_*`` helpers return a new
    schedule so callers can validate before replacing the stored one.
    """
    rules: Tuple[DayRule, ...]
    timezone: str
    exceptions: Tuple[Date, ...] = ()
    min_break_between_appointments: int = 0
    max_daily_appointments: Optional[int] = None

    def __post_init__(self):
        ensure_timezone(self.timezone)

        if self.min_break_between_appointments < 0:
            raise ScheduleValidationError("Minimum break cannot be negative")
        if self.max_daily_appointments is not None and self.max_daily_appointments < 1:
            raise ScheduleValidationError("Maximum daily appointments must be at least 1")

    def with_rules(self, rules: Tuple[DayRule, ...]) -> "ProviderSchedule":
        return replace(self, rules=tuple(rules))

    def has_exception(self, value: CalendarDateLike) -> bool:
        local = to_local_date(value, self.timezone)
        return any(exception == local for exception in self.exceptions)

    def with_exception(self, value: CalendarDateLike) -> "ProviderSchedule":
        local = to_local_date(value, self.timezone)
        if self.has_exception(local):
            return self
        return replace(self, exceptions=self.exceptions + (local,))

    def without_exception(self, value: CalendarDateLike) -> "ProviderSchedule":
        local = to_local_date(value, self.timezone)
        return replace(
            self,
            exceptions=tuple(exc for exc in self.exceptions if exc != local),
        )

    def with_specific_date(
        self,
        value: CalendarDateLike,
        time_slots: Tuple[TimeWindow, ...],
    ) -> "ProviderSchedule":
        """
        Attach a specific-date override, replacing any existing one for that date.

        The override is stored on the rule for the date's weekday, or on the
        first rule when the provider has no rule for that weekday.
        """
        if not self.rules:
            raise ScheduleValidationError("Cannot add a specific date to a schedule without rules")

        local = to_local_date(value, self.timezone)
        cleared = self.without_specific_date(local).rules
        weekday = DayOfWeek.from_date(local, self.timezone)

        target = next(
            (index for index, rule in enumerate(cleared) if rule.day_of_week == weekday),
            0,
        )
        override = SpecificDate(date=local, time_slots=tuple(time_slots))

        rules = list(cleared)
        rules[target] = replace(
            rules[target],
            specific_dates=rules[target].specific_dates + (override,),
        )
        return self.with_rules(tuple(rules))

    def without_specific_date(self, value: CalendarDateLike) -> "ProviderSchedule":
        local = to_local_date(value, self.timezone)
        rules = tuple(
            replace(
                rule,
                specific_dates=tuple(sd for sd in rule.specific_dates if sd.date != local),
            )
            for rule in self.rules
        )
        return self.with_rules(rules)


@dataclass(frozen=True)
class BookedInterval:
    """
    An existing appointment, supplied by the caller and never mutated.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime
    location_id: Optional[str] = None

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Check if ``[start, end)`` overlaps this booking."""
        return start < self.end and end > self.start


@dataclass(frozen=True)
class ResolvedSlot:
    """A concrete bookable start/end pair produced by the slot generator."""
    start: DateTime
    end: DateTime
    location_id: Optional[str] = field(default=None)

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:mm - HH:mm (N min) @ location
        """
        weekday = self.start.format("dddd")
        date_str = self.start.format("YYYY-MM-DD")
        time_str = f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')}"
        text = f"{weekday}, {date_str} | {time_str} ({self.duration_minutes()} min)"
        if self.location_id:
            text += f" @ {self.location_id}"
        return text
