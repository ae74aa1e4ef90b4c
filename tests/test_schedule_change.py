"""
Tests for the booked-appointment guard on schedule changes.
"""

import pendulum
import pytest

from provider_availability.domain.exceptions import SchedulingConflictError
from provider_availability.domain.models import (
    BookedInterval,
    DayOfWeek,
    DayRule,
    SpecificDate,
    TimeWindow,
)
from provider_availability.domain.schedule_change import validate_update
from provider_availability.domain.slot_generator import generate_slots

TZ = "Europe/Paris"

OLD_RULES = (
    DayRule(DayOfWeek.MONDAY, (TimeWindow("09:00", "17:00", location_id="clinic-a"),)),
    DayRule(DayOfWeek.FRIDAY, (TimeWindow("22:00", "06:00", spans_overnight=True),)),
)


def _booking(start, end, location_id=None):
    return BookedInterval(
        pendulum.parse(start, tz=TZ),
        pendulum.parse(end, tz=TZ),
        location_id=location_id,
    )


MONDAY_MORNING = _booking("2024-03-18 09:00", "2024-03-18 10:00", "clinic-a")
MONDAY_AFTERNOON = _booking("2024-03-18 15:00", "2024-03-18 16:00", "clinic-a")


class TestValidateUpdate:
    """Tests for validate_update."""

    def test_unchanged_rules_still_report_uncovered_appointments(self):
        stray = _booking("2024-03-19 09:00", "2024-03-19 10:00")

        with pytest.raises(SchedulingConflictError) as exc_info:
            validate_update(OLD_RULES, list(OLD_RULES), [stray], TZ)

        assert exc_info.value.conflicts == [stray]

    def test_covered_appointments_pass(self):
        new_rules = (
            DayRule(DayOfWeek.MONDAY, (TimeWindow("08:00", "18:00", location_id="clinic-a"),)),
        )

        validate_update(OLD_RULES, new_rules, [MONDAY_MORNING, MONDAY_AFTERNOON], TZ)

    def test_narrowed_window_orphans_appointment(self):
        new_rules = (
            DayRule(DayOfWeek.MONDAY, (TimeWindow("09:00", "12:00", location_id="clinic-a"),)),
        )

        with pytest.raises(SchedulingConflictError) as exc_info:
            validate_update(OLD_RULES, new_rules, [MONDAY_MORNING, MONDAY_AFTERNOON], TZ)

        assert exc_info.value.conflicts == [MONDAY_AFTERNOON]
        assert "2024-03-18 15:00-16:00" in str(exc_info.value)

    def test_every_conflict_is_reported(self):
        new_rules = (DayRule(DayOfWeek.TUESDAY, (TimeWindow("09:00", "17:00"),)),)

        with pytest.raises(SchedulingConflictError) as exc_info:
            validate_update(OLD_RULES, new_rules, [MONDAY_MORNING, MONDAY_AFTERNOON], TZ)

        assert len(exc_info.value.conflicts) == 2

    def test_location_must_match_exactly(self):
        moved = (
            DayRule(DayOfWeek.MONDAY, (TimeWindow("09:00", "17:00", location_id="clinic-b"),)),
        )
        unlocated = (DayRule(DayOfWeek.MONDAY, (TimeWindow("09:00", "17:00"),)),)

        with pytest.raises(SchedulingConflictError):
            validate_update(OLD_RULES, moved, [MONDAY_MORNING], TZ)
        with pytest.raises(SchedulingConflictError):
            validate_update(OLD_RULES, unlocated, [MONDAY_MORNING], TZ)

    def test_travel_buffer_is_not_applied(self):
        new_rules = (
            DayRule(
                DayOfWeek.MONDAY,
                (
                    TimeWindow(
                        "09:00",
                        "17:00",
                        location_id="clinic-a",
                        requires_travel_time=True,
                        travel_buffer=30,
                    ),
                ),
            ),
        )

        validate_update(OLD_RULES, new_rules, [MONDAY_MORNING], TZ)

    def test_specific_date_covers_appointment(self):
        override = SpecificDate(
            pendulum.date(2024, 3, 18),
            (TimeWindow("08:00", "11:00", location_id="clinic-a"),),
        )
        new_rules = (
            DayRule(DayOfWeek.TUESDAY, (TimeWindow("09:00", "17:00"),), specific_dates=(override,)),
        )

        validate_update(OLD_RULES, new_rules, [MONDAY_MORNING], TZ)

        with pytest.raises(SchedulingConflictError):
            validate_update(OLD_RULES, new_rules, [MONDAY_AFTERNOON], TZ)

    def test_overnight_appointment_is_covered(self):
        late = _booking("2024-03-22 23:00", "2024-03-23 01:00")
        new_rules = (DayRule(DayOfWeek.FRIDAY, (TimeWindow("21:00", "02:00", spans_overnight=True),)),)

        validate_update(OLD_RULES, new_rules, [late], TZ)

    def test_overnight_appointment_past_new_end(self):
        late = _booking("2024-03-22 23:00", "2024-03-23 03:00")
        new_rules = (DayRule(DayOfWeek.FRIDAY, (TimeWindow("21:00", "02:00", spans_overnight=True),)),)

        with pytest.raises(SchedulingConflictError):
            validate_update(OLD_RULES, new_rules, [late], TZ)

    def test_after_midnight_tail_of_overnight_window_is_covered(self):
        friday_night = generate_slots("2024-03-22", OLD_RULES[1].time_slots, 60, timezone=TZ)
        after_midnight = [slot for slot in friday_night if slot.start.day == 23]
        bookings = [BookedInterval(slot.start, slot.end) for slot in after_midnight]
        new_rules = OLD_RULES + (DayRule(DayOfWeek.TUESDAY, (TimeWindow("09:00", "17:00"),)),)

        assert len(bookings) == 6
        validate_update(OLD_RULES, new_rules, bookings, TZ)

    def test_after_midnight_booking_past_overnight_end(self):
        late = _booking("2024-03-23 05:30", "2024-03-23 06:30")

        with pytest.raises(SchedulingConflictError):
            validate_update(OLD_RULES, OLD_RULES, [late], TZ)

    def test_after_midnight_booking_needs_overnight_window(self):
        early = _booking("2024-03-19 00:30", "2024-03-19 01:00", "clinic-a")

        with pytest.raises(SchedulingConflictError):
            validate_update(OLD_RULES, OLD_RULES, [early], TZ)

    def test_appointment_checked_on_provider_local_date(self):
        # 23:30 UTC on Sunday is already Monday in Paris
        utc_booking = BookedInterval(
            pendulum.datetime(2024, 3, 17, 23, 30, tz="UTC"),
            pendulum.datetime(2024, 3, 18, 0, 30, tz="UTC"),
        )
        new_rules = (DayRule(DayOfWeek.MONDAY, (TimeWindow("00:00", "02:00"),)),)

        validate_update(OLD_RULES, new_rules, [utc_booking], TZ)

    def test_no_appointments(self):
        validate_update(OLD_RULES, (), [], TZ)


class TestMondayAppointmentCoverage:
    """A booked Monday 14:00-15:00 appointment decides which rulesets are accepted."""

    APPOINTMENT = _booking("2024-03-18 14:00", "2024-03-18 15:00")
    CURRENT = (DayRule(DayOfWeek.MONDAY, (TimeWindow("09:00", "17:00"),)),)

    def test_ruleset_still_covering_it(self):
        new_rules = (
            DayRule(DayOfWeek.MONDAY, (TimeWindow("09:00", "12:00"), TimeWindow("13:00", "16:00"))),
        )

        validate_update(self.CURRENT, new_rules, [self.APPOINTMENT], TZ)

    def test_ruleset_losing_it(self):
        new_rules = (DayRule(DayOfWeek.MONDAY, (TimeWindow("09:00", "14:30"),)),)

        with pytest.raises(SchedulingConflictError):
            validate_update(self.CURRENT, new_rules, [self.APPOINTMENT], TZ)
