"""
Pydantic records describing the YAML schedule store.

Records validate the raw file shape and convert to and from the frozen
domain dataclasses. Domain invariants (clock format, travel buffers,
timezone names) are enforced when converting, not duplicated here.
"""

from dataclasses import asdict
from datetime import date as calendar_date, datetime
from typing import Any, List, Optional

import pendulum
from pydantic import BaseModel, Field, field_validator

from ..domain.models import (
    BookedInterval,
    DayOfWeek,
    DayRule,
    ProviderSchedule,
    SpecificDate,
    TimeWindow,
)
from ..domain.time_utils import localize


def _to_pendulum_date(value: calendar_date) -> pendulum.Date:
    return pendulum.date(value.year, value.month, value.day)


def _coerce_identifier(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class TimeWindowRecord(BaseModel):
    """One time window as stored in YAML."""
    start_time: str
    end_time: str
    location_id: Optional[str] = None
    requires_travel_time: bool = False
    travel_buffer: Optional[int] = None
    spans_overnight: bool = False

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def coerce_sexagesimal(cls, value: Any) -> Any:
        """YAML 1.1 loads an unquoted 14:30 as the base-60 integer 870."""
        if isinstance(value, int) and not isinstance(value, bool):
            hours, minutes = divmod(value, 60)
            return f"{hours:02d}:{minutes:02d}"
        return value

    @field_validator("location_id", mode="before")
    @classmethod
    def coerce_location(cls, value: Any) -> Any:
        return _coerce_identifier(value)

    def to_domain(self) -> TimeWindow:
        return TimeWindow(**self.model_dump())

    @classmethod
    def from_domain(cls, window: TimeWindow) -> "TimeWindowRecord":
        return cls(**asdict(window))


class SpecificDateRecord(BaseModel):
    """A specific-date override as stored in YAML."""
    date: calendar_date
    time_slots: List[TimeWindowRecord]

    def to_domain(self) -> SpecificDate:
        return SpecificDate(
            date=_to_pendulum_date(self.date),
            time_slots=tuple(slot.to_domain() for slot in self.time_slots),
        )

    @classmethod
    def from_domain(cls, specific: SpecificDate) -> "SpecificDateRecord":
        return cls(
            date=specific.date,
            time_slots=[TimeWindowRecord.from_domain(slot) for slot in specific.time_slots],
        )


class DayRuleRecord(BaseModel):
    """A weekday rule as stored in YAML."""
    day_of_week: DayOfWeek
    time_slots: List[TimeWindowRecord]
    is_recurring: bool = True
    weeks: Optional[List[int]] = None
    specific_dates: List[SpecificDateRecord] = Field(default_factory=list)

    @field_validator("day_of_week", mode="before")
    @classmethod
    def normalize_day(cls, value: Any) -> Any:
        """Accept ``monday`` or ``MONDAY`` as well as ``Monday``."""
        if isinstance(value, str):
            return value.strip().capitalize()
        return value

    def to_domain(self) -> DayRule:
        return DayRule(
            day_of_week=self.day_of_week,
            time_slots=tuple(slot.to_domain() for slot in self.time_slots),
            is_recurring=self.is_recurring,
            weeks=tuple(self.weeks) if self.weeks is not None else None,
            specific_dates=tuple(sd.to_domain() for sd in self.specific_dates),
        )

    @classmethod
    def from_domain(cls, rule: DayRule) -> "DayRuleRecord":
        return cls(
            day_of_week=rule.day_of_week,
            time_slots=[TimeWindowRecord.from_domain(slot) for slot in rule.time_slots],
            is_recurring=rule.is_recurring,
            weeks=list(rule.weeks) if rule.weeks is not None else None,
            specific_dates=[SpecificDateRecord.from_domain(sd) for sd in rule.specific_dates],
        )


class ProviderRecord(BaseModel):
    """A provider and its schedule as stored in YAML."""
    id: str
    timezone: Optional[str] = None
    rules: List[DayRuleRecord] = Field(default_factory=list)
    exceptions: List[calendar_date] = Field(default_factory=list)
    min_break_between_appointments: Optional[int] = None
    max_daily_appointments: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _coerce_identifier(value)

    def to_domain(self, default_timezone: str, default_min_break: int = 0) -> ProviderSchedule:
        if self.min_break_between_appointments is None:
            min_break = default_min_break
        else:
            min_break = self.min_break_between_appointments

        return ProviderSchedule(
            rules=tuple(rule.to_domain() for rule in self.rules),
            timezone=self.timezone or default_timezone,
            exceptions=tuple(_to_pendulum_date(exc) for exc in self.exceptions),
            min_break_between_appointments=min_break,
            max_daily_appointments=self.max_daily_appointments,
        )

    @classmethod
    def from_domain(cls, provider_id: str, schedule: ProviderSchedule) -> "ProviderRecord":
        return cls(
            id=provider_id,
            timezone=schedule.timezone,
            rules=[DayRuleRecord.from_domain(rule) for rule in schedule.rules],
            exceptions=list(schedule.exceptions),
            min_break_between_appointments=schedule.min_break_between_appointments,
            max_daily_appointments=schedule.max_daily_appointments,
        )


class BookingRecord(BaseModel):
    """An existing appointment. Naive timestamps are in the provider's timezone."""
    provider_id: str
    start: datetime
    end: datetime
    location_id: Optional[str] = None

    @field_validator("provider_id", "location_id", mode="before")
    @classmethod
    def coerce_ids(cls, value: Any) -> Any:
        return _coerce_identifier(value)

    def to_domain(self, timezone: str) -> BookedInterval:
        return BookedInterval(
            start=localize(self.start, timezone),
            end=localize(self.end, timezone),
            location_id=self.location_id,
        )


class ScheduleStore(BaseModel):
    """Root of the YAML data file."""
    providers: List[ProviderRecord] = Field(default_factory=list)
    bookings: List[BookingRecord] = Field(default_factory=list)

    def find_provider(self, provider_id: str) -> Optional[ProviderRecord]:
        for provider in self.providers:
            if provider.id == provider_id:
                return provider
        return None
