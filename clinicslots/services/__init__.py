"""
Service layer helpers that orchestrate repositories, notifiers and domain logic.
"""

from .autofill import AutoFillDispatcher, AutoFillNotifier, AutoFillReport, NotificationOutcome, Notifier
from .booking import BookedSlotRepository, BookingDecision, BookingService, Cancellation, InMemoryBookedSlotRepository
from .waitlist import InMemoryWaitlistRepository, WaitlistFilter, WaitlistQueue, WaitlistRepository

__all__ = [
    "AutoFillDispatcher",
    "AutoFillNotifier",
    "AutoFillReport",
    "NotificationOutcome",
    "Notifier",
    "BookedSlotRepository",
    "BookingDecision",
    "BookingService",
    "Cancellation",
    "InMemoryBookedSlotRepository",
    "InMemoryWaitlistRepository",
    "WaitlistFilter",
    "WaitlistQueue",
    "WaitlistRepository",
]
