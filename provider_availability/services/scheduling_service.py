"""
Application services for querying and editing provider availability.

The service coordinates loading schedules and bookings through a repository
adapter and delegates every decision to the domain functions. This keeps the
CLI thin and improves testability by allowing the storage dependency to be
mocked via a simple protocol.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Protocol, Sequence

import pendulum
from pendulum import DateTime

from ..domain.availability_resolver import is_time_available, resolve_day_windows
from ..domain.exceptions import ProviderNotFoundError
from ..domain.models import BookedInterval, DayRule, ProviderSchedule, ResolvedSlot, TimeWindow
from ..domain.schedule_change import validate_update
from ..domain.slot_generator import filter_windows_by_location, generate_slots
from ..domain.time_utils import CalendarDateLike, combine_date_time, normalize_date, to_local_date
from ..domain.window_validator import validate_rules, validate_schedule, validate_windows

logger = logging.getLogger(__name__)


class ScheduleRepositoryProtocol(Protocol):
    """Protocol describing the storage behaviour needed by the service."""

    async def get_schedule(self, provider_id: str) -> Optional[ProviderSchedule]:
        """Return the provider's schedule, or None if unknown."""

    async def replace_schedule(self, provider_id: str, schedule: ProviderSchedule) -> None:
        """Atomically replace the provider's stored schedule."""

    async def list_bookings(
        self,
        provider_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[BookedInterval]:
        """Return bookings overlapping ``[start, end)``, or all when unbounded."""


class SchedulingService:
    """
    Orchestrates schedule retrieval, slot generation and validated updates.

    Every mutation follows validate-then-replace: the new schedule is built in
    memory, checked, and only then handed to the repository in one write.
    Bookings that ended before ``clock()`` never block an edit.
    """

    def __init__(
        self,
        repository: ScheduleRepositoryProtocol,
        clock: Callable[[], DateTime] = pendulum.now,
    ) -> None:
        self._repository = repository
        self._clock = clock

    async def get_schedule(self, provider_id: str) -> ProviderSchedule:
        """Load a provider schedule or raise ProviderNotFoundError."""
        schedule = await self._repository.get_schedule(provider_id)
        if schedule is None:
            raise ProviderNotFoundError(provider_id)
        return schedule

    async def get_available_slots(
        self,
        provider_id: str,
        date: CalendarDateLike,
        duration_minutes: int,
        *,
        location_id: Optional[str] = None,
        only_at: Optional[datetime] = None,
        min_break: Optional[int] = None,
    ) -> List[ResolvedSlot]:
        """
        Compute the bookable slots of a provider on one calendar date.

        Args:
            provider_id: Provider to query
            date: Calendar date (or instant) in the provider's timezone
            duration_minutes: Appointment length
            location_id: Restrict to windows at this location
            only_at: Only test this start instant
            min_break: Override the provider's minimum break

        Returns:
            Slots ordered by start
        """
        schedule = await self.get_schedule(provider_id)
        timezone = schedule.timezone
        local_date = to_local_date(date, timezone)

        windows = filter_windows_by_location(
            resolve_day_windows(schedule, local_date),
            location_id,
        )
        if not windows:
            logger.debug("Provider %s has no windows on %s", provider_id, local_date)
            return []

        day_start = combine_date_time(local_date, "00:00", timezone)
        # Overnight windows reach into the following day
        booked = await self._repository.list_bookings(
            provider_id,
            start=day_start,
            end=day_start.add(days=2),
        )

        if schedule.max_daily_appointments is not None:
            same_day = [
                b for b in booked if normalize_date(b.start, timezone) == local_date.isoformat()
            ]
            if len(same_day) >= schedule.max_daily_appointments:
                logger.info(
                    "Provider %s reached %d appointments on %s",
                    provider_id, schedule.max_daily_appointments, local_date
                )
                return []

        return generate_slots(
            local_date,
            windows,
            duration_minutes,
            min_break=schedule.min_break_between_appointments if min_break is None else min_break,
            only_at=only_at,
            booked=booked,
            timezone=timezone,
        )

    async def is_available(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        location_id: Optional[str] = None,
    ) -> bool:
        """Check rule coverage for ``[start, end)`` and that no booking overlaps it."""
        schedule = await self.get_schedule(provider_id)

        if not is_time_available(schedule, start, end, location_id):
            return False

        booked = await self._repository.list_bookings(provider_id, start=start, end=end)
        return not any(interval.overlaps(start, end) for interval in booked)

    async def update_rules(self, provider_id: str, new_rules: Sequence[DayRule]) -> ProviderSchedule:
        """
        Replace a provider's rules after validating them and checking bookings.

        Raises:
            ScheduleValidationError: If the new rules are invalid
            SchedulingConflictError: If a booked appointment would lose coverage
        """
        schedule = await self.get_schedule(provider_id)
        validate_rules(new_rules)

        bookings = await self._upcoming_bookings(provider_id)
        validate_update(schedule.rules, new_rules, bookings, schedule.timezone)

        updated = schedule.with_rules(tuple(new_rules))
        await self._repository.replace_schedule(provider_id, updated)
        logger.info("Replaced %d rule(s) for provider %s", len(updated.rules), provider_id)
        return updated

    async def add_exception(self, provider_id: str, date: CalendarDateLike) -> ProviderSchedule:
        """Black out a calendar date. Existing bookings on it are kept and logged."""
        schedule = await self.get_schedule(provider_id)
        updated = schedule.with_exception(date)
        validate_schedule(updated)

        day = to_local_date(date, schedule.timezone)
        bookings = await self._upcoming_bookings(provider_id)
        affected = [
            b for b in bookings if normalize_date(b.start, schedule.timezone) == day.isoformat()
        ]
        if affected:
            logger.warning(
                "Exception %s for provider %s covers %d existing appointment(s)",
                day, provider_id, len(affected)
            )

        return await self._replace(provider_id, updated)

    async def remove_exception(self, provider_id: str, date: CalendarDateLike) -> ProviderSchedule:
        schedule = await self.get_schedule(provider_id)
        updated = schedule.without_exception(date)
        validate_schedule(updated)
        return await self._replace(provider_id, updated)

    async def add_specific_date(
        self,
        provider_id: str,
        date: CalendarDateLike,
        time_slots: Sequence[TimeWindow],
    ) -> ProviderSchedule:
        """Add or replace a specific-date override, checking existing bookings."""
        validate_windows(time_slots)
        schedule = await self.get_schedule(provider_id)
        updated = schedule.with_specific_date(date, tuple(time_slots))
        return await self._validated_replace(provider_id, schedule, updated)

    async def remove_specific_date(self, provider_id: str, date: CalendarDateLike) -> ProviderSchedule:
        schedule = await self.get_schedule(provider_id)
        updated = schedule.without_specific_date(date)
        return await self._validated_replace(provider_id, schedule, updated)

    async def _validated_replace(
        self,
        provider_id: str,
        current: ProviderSchedule,
        updated: ProviderSchedule,
    ) -> ProviderSchedule:
        validate_schedule(updated)
        bookings = await self._upcoming_bookings(provider_id)
        validate_update(current.rules, updated.rules, bookings, current.timezone)
        return await self._replace(provider_id, updated)

    async def _replace(self, provider_id: str, schedule: ProviderSchedule) -> ProviderSchedule:
        await self._repository.replace_schedule(provider_id, schedule)
        logger.info("Stored updated schedule for provider %s", provider_id)
        return schedule

    async def _upcoming_bookings(self, provider_id: str) -> List[BookedInterval]:
        """Bookings that have not ended yet; past appointments never block an edit."""
        return await self._repository.list_bookings(provider_id, start=self._clock())
