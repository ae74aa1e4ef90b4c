"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability_resolver import (
    get_day_availability,
    get_specific_date_availability,
    is_alternate_week,
    is_time_available,
    resolve_day_windows,
)
from .models import (
    BookedInterval,
    DayOfWeek,
    DayRule,
    ProviderSchedule,
    ResolvedSlot,
    SpecificDate,
    TimeWindow,
)
from .schedule_change import validate_update
from .slot_generator import filter_windows_by_location, generate_slots
from .window_validator import (
    check_travel_buffers,
    validate_day_rule,
    validate_rules,
    validate_schedule,
    validate_weeks,
    validate_windows,
)

__all__ = [
    "BookedInterval",
    "DayOfWeek",
    "DayRule",
    "ProviderSchedule",
    "ResolvedSlot",
    "SpecificDate",
    "TimeWindow",
    "check_travel_buffers",
    "filter_windows_by_location",
    "generate_slots",
    "get_day_availability",
    "get_specific_date_availability",
    "is_alternate_week",
    "is_time_available",
    "resolve_day_windows",
    "validate_day_rule",
    "validate_rules",
    "validate_schedule",
    "validate_update",
    "validate_weeks",
    "validate_windows",
]
