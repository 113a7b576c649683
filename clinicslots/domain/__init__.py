"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability_calculator import (
    AvailabilityCalculator,
    AvailableSlots,
    SlotSearchResult,
    calculate_available_slots,
)
from .conflict_detector import add_buffer_time, find_conflicts, has_overlap, is_slot_available
from .models import FreedSlot, Priority, TimeSlot, WaitlistEntry, WaitlistStatus
from .schedule import AvailabilityConfig, DayHours, LunchBreak, WorkingHoursConfig

__all__ = [
    "AvailabilityCalculator",
    "AvailableSlots",
    "SlotSearchResult",
    "calculate_available_slots",
    "add_buffer_time",
    "find_conflicts",
    "has_overlap",
    "is_slot_available",
    "FreedSlot",
    "Priority",
    "TimeSlot",
    "WaitlistEntry",
    "WaitlistStatus",
    "AvailabilityConfig",
    "DayHours",
    "LunchBreak",
    "WorkingHoursConfig",
]
