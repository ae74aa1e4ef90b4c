"""
Adapters layer - YAML schedule store.
"""

from .records import (
    BookingRecord,
    DayRuleRecord,
    ProviderRecord,
    ScheduleStore,
    SpecificDateRecord,
    TimeWindowRecord,
)
from .yaml_repository import YamlScheduleRepository

__all__ = [
    "BookingRecord",
    "DayRuleRecord",
    "ProviderRecord",
    "ScheduleStore",
    "SpecificDateRecord",
    "TimeWindowRecord",
    "YamlScheduleRepository",
]
