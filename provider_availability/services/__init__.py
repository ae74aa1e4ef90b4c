"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .scheduling_service import ScheduleRepositoryProtocol, SchedulingService

__all__ = ["ScheduleRepositoryProtocol", "SchedulingService"]
