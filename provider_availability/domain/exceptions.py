"""
Domain-specific exception hierarchy for the provider availability engine.
"""

from typing import List, Sequence


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class ScheduleValidationError(SchedulingError):
    """Raised when a schedule, rule or time window is invalid input."""


class InvalidTimeFormat(ScheduleValidationError):
    """Raised when a clock time is not a valid ``HH:mm`` string."""


class InvalidDateFormat(ScheduleValidationError):
    """Raised when a calendar date cannot be parsed."""


class InvalidTimezone(ScheduleValidationError):
    """Raised when a timezone is not a known IANA name."""


class InvalidTravelBuffer(ScheduleValidationError):
    """Raised when a travel buffer is missing, zero or negative."""


class MissingTimeSlots(ScheduleValidationError):
    """Raised when a day rule carries no time windows."""


class ZeroLengthWindow(ScheduleValidationError):
    """Raised when a time window starts and ends at the same time."""


class InconsistentOvernightFlag(ScheduleValidationError):
    """Raised when ``spans_overnight`` disagrees with the window's clock times."""


class OverlappingWindows(ScheduleValidationError):
    """Raised when two windows of the same day overlap."""


class InsufficientTravelBuffer(ScheduleValidationError):
    """Raised when adjacent windows leave less idle time than travel requires."""


class WeekNumberOutOfRange(ScheduleValidationError):
    """Raised when an alternating-week selector holds a week outside 1-53."""


class InvalidSlotRequest(ScheduleValidationError):
    """Raised when a slot query has a non-positive duration or negative break."""


class SchedulingConflictError(SchedulingError):
    """Raised when a schedule change would orphan existing appointments."""

    def __init__(self, message: str, conflicts: Sequence[object] = ()):
        super().__init__(message)
        self.conflicts: List[object] = list(conflicts)


class ProviderNotFoundError(SchedulingError):
    """Raised when no schedule is stored for a provider."""

    def __init__(self, provider_id: str):
        super().__init__(f"Provider not found: {provider_id}")
        self.provider_id = provider_id


class RepositoryError(SchedulingError):
    """Raised when schedule data cannot be loaded or written."""
