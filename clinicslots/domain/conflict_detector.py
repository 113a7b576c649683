"""
Conflict detection between a proposed booking and a provider's existing slots.

Pure functions: no I/O, no clock. The caller fetches the existing slots for
the provider/day and is responsible for persisting the decision atomically.
"""

from typing import Iterable, List

from .models import TimeSlot


def add_buffer_time(slot: TimeSlot, buffer_minutes: int) -> TimeSlot:
    """
    Return a new slot widened by ``buffer_minutes`` on both sides.

    The input slot is not modified.
    """
    if buffer_minutes < 0:
        raise ValueError(f"buffer_minutes must not be negative, got {buffer_minutes}")
    if buffer_minutes == 0:
        return slot
    return slot.shifted(before_minutes=buffer_minutes, after_minutes=buffer_minutes)


def has_overlap(proposed: TimeSlot, existing: TimeSlot) -> bool:
    """
    Check whether two slots conflict.

    Half-open semantics: ``[s1, e1)`` and ``[s2, e2)`` conflict iff
    ``s1 < e2 and s2 < e1``, so touching boundaries are not a conflict.
    Slots of different providers never conflict, and a slot never
    conflicts with itself (same id, e.g. while rescheduling).
    """
    if proposed.provider_id != existing.provider_id:
        return False

    if proposed.id and existing.id and proposed.id == existing.id:
        return False

    return proposed.overlaps(existing)


def find_conflicts(proposed: TimeSlot, existing: Iterable[TimeSlot]) -> List[TimeSlot]:
    """
    Return the existing slots that conflict with ``proposed``.

    ``proposed`` is expected to be buffer-expanded already; ``existing`` is
    compared as-is.
    """
    return [slot for slot in existing if has_overlap(proposed, slot)]


def is_slot_available(proposed: TimeSlot, existing: Iterable[TimeSlot]) -> bool:
    """Check if a (buffered) slot has no conflicts."""
    return not find_conflicts(proposed, existing)
