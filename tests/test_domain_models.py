"""
Tests for domain models.
"""

import pendulum
import pytest

from provider_availability.domain.exceptions import (
    InvalidTimeFormat,
    InvalidTimezone,
    InvalidTravelBuffer,
    ScheduleValidationError,
)
from provider_availability.domain.models import (
    BookedInterval,
    DayOfWeek,
    DayRule,
    ProviderSchedule,
    ResolvedSlot,
    SpecificDate,
    TimeWindow,
)


def _schedule(**kwargs) -> ProviderSchedule:
    rules = (
        DayRule(DayOfWeek.MONDAY, (TimeWindow("09:00", "17:00"),)),
        DayRule(DayOfWeek.TUESDAY, (TimeWindow("10:00", "14:00"),)),
    )
    return ProviderSchedule(rules=rules, timezone="Europe/Paris", **kwargs)


class TestTimeWindow:
    """Tests for TimeWindow model."""

    def test_clock_minutes(self):
        window = TimeWindow("09:30", "17:00")

        assert window.start_minutes == 570
        assert window.end_minutes == 1020
        assert window.effective_end_minutes == 1020
        assert str(window) == "09:30-17:00"

    def test_overnight_end_moves_to_next_day(self):
        window = TimeWindow("22:00", "06:00", spans_overnight=True)

        assert window.effective_end_minutes == 360 + 1440

    def test_invalid_clock_time(self):
        with pytest.raises(InvalidTimeFormat):
            TimeWindow("25:00", "26:00")

    def test_travel_requires_positive_buffer(self):
        with pytest.raises(InvalidTravelBuffer):
            TimeWindow("09:00", "12:00", requires_travel_time=True)

        with pytest.raises(InvalidTravelBuffer):
            TimeWindow("09:00", "12:00", requires_travel_time=True, travel_buffer=0)

        with pytest.raises(InvalidTravelBuffer):
            TimeWindow("09:00", "12:00", travel_buffer=-5)

        window = TimeWindow("09:00", "12:00", requires_travel_time=True, travel_buffer=15)
        assert window.buffer_minutes == 15

    def test_buffer_without_travel_is_rejected(self):
        with pytest.raises(InvalidTravelBuffer, match="only allowed"):
            TimeWindow("09:00", "12:00", travel_buffer=30)

        assert TimeWindow("09:00", "12:00", travel_buffer=0).buffer_minutes == 0


class TestProviderSchedule:
    """Tests for ProviderSchedule invariants and copy-on-write helpers."""

    def test_invalid_timezone(self):
        with pytest.raises(InvalidTimezone):
            ProviderSchedule(rules=(), timezone="Nowhere/City")

    def test_limits_are_checked(self):
        with pytest.raises(ScheduleValidationError):
            _schedule(min_break_between_appointments=-1)

        with pytest.raises(ScheduleValidationError):
            _schedule(max_daily_appointments=0)

    def test_exceptions_are_added_once(self):
        schedule = _schedule()

        updated = schedule.with_exception("2024-12-25").with_exception("2024-12-25")

        assert updated.exceptions == (pendulum.date(2024, 12, 25),)
        assert schedule.exceptions == ()
        assert updated.has_exception(pendulum.datetime(2024, 12, 25, 10, tz="Europe/Paris"))

        assert updated.without_exception("2024-12-25").exceptions == ()

    def test_specific_date_attaches_to_matching_weekday(self):
        schedule = _schedule()
        windows = (TimeWindow("08:00", "09:00"),)

        updated = schedule.with_specific_date("2024-03-19", windows)

        assert updated.rules[0].specific_dates == ()
        assert updated.rules[1].specific_dates == (
            SpecificDate(date=pendulum.date(2024, 3, 19), time_slots=windows),
        )

    def test_specific_date_is_replaced_not_duplicated(self):
        first = (TimeWindow("08:00", "09:00"),)
        second = (TimeWindow("15:00", "16:00"),)

        updated = _schedule().with_specific_date("2024-03-18", first).with_specific_date(
            "2024-03-18", second
        )

        assert len(updated.rules[0].specific_dates) == 1
        assert updated.rules[0].specific_dates[0].time_slots == second

    def test_specific_date_without_weekday_rule_goes_to_first_rule(self):
        updated = _schedule().with_specific_date("2024-03-23", (TimeWindow("10:00", "11:00"),))

        assert updated.rules[0].specific_dates[0].date == pendulum.date(2024, 3, 23)

    def test_remove_specific_date(self):
        updated = _schedule().with_specific_date("2024-03-18", (TimeWindow("10:00", "11:00"),))

        assert updated.without_specific_date("2024-03-18") == _schedule()

    def test_specific_date_needs_rules(self):
        schedule = ProviderSchedule(rules=(), timezone="UTC")

        with pytest.raises(ScheduleValidationError):
            schedule.with_specific_date("2024-03-18", (TimeWindow("10:00", "11:00"),))


class TestBookedInterval:
    """Tests for BookedInterval model."""

    def test_invalid_interval_raises_error(self):
        start = pendulum.parse("2024-03-18 17:00", tz="Europe/Paris")
        end = pendulum.parse("2024-03-18 09:00", tz="Europe/Paris")

        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            BookedInterval(start=start, end=end)

    def test_overlaps(self):
        booking = BookedInterval(
            start=pendulum.parse("2024-03-18 10:00", tz="Europe/Paris"),
            end=pendulum.parse("2024-03-18 11:00", tz="Europe/Paris"),
        )

        assert booking.overlaps(
            pendulum.parse("2024-03-18 10:30", tz="Europe/Paris"),
            pendulum.parse("2024-03-18 11:30", tz="Europe/Paris"),
        )
        assert not booking.overlaps(
            pendulum.parse("2024-03-18 11:00", tz="Europe/Paris"),
            pendulum.parse("2024-03-18 12:00", tz="Europe/Paris"),
        )


class TestResolvedSlot:
    """Tests for ResolvedSlot display helpers."""

    def test_format_display(self):
        slot = ResolvedSlot(
            start=pendulum.parse("2024-03-18 09:00", tz="Europe/Paris"),
            end=pendulum.parse("2024-03-18 09:30", tz="Europe/Paris"),
            location_id="clinic-a",
        )

        assert slot.duration_minutes() == 30
        assert slot.format_display() == "Monday, 2024-03-18 | 09:00 - 09:30 (30 min) @ clinic-a"
