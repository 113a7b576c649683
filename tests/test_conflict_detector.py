"""
Tests for conflict detection.
"""

import pytest

from clinicslots.domain.conflict_detector import add_buffer_time, find_conflicts, has_overlap, is_slot_available
from clinicslots.domain.models import TimeSlot

from conftest import at


def _slot(start: str, end: str, provider: str = "dr-ana", slot_id: str = None) -> TimeSlot:
    return TimeSlot(
        provider_id=provider,
        start=at(f"2026-03-02 {start}"),
        end=at(f"2026-03-02 {end}"),
        id=slot_id,
    )


class TestAddBufferTime:
    """Tests for buffer expansion."""

    def test_buffer_is_symmetric(self):
        buffered = add_buffer_time(_slot("10:00", "10:30"), 15)

        assert buffered.start == at("2026-03-02 09:45")
        assert buffered.end == at("2026-03-02 10:45")

    def test_input_is_not_mutated(self):
        original = _slot("10:00", "10:30", slot_id="a1")

        buffered = add_buffer_time(original, 15)

        assert original.start == at("2026-03-02 10:00")
        assert original.end == at("2026-03-02 10:30")
        assert buffered.id == "a1"
        assert buffered.provider_id == "dr-ana"

    def test_zero_buffer_keeps_interval(self):
        slot = _slot("10:00", "10:30")

        assert add_buffer_time(slot, 0) == slot

    def test_negative_buffer_rejected(self):
        with pytest.raises(ValueError):
            add_buffer_time(_slot("10:00", "10:30"), -5)


class TestFindConflicts:
    """Tests for overlap detection against existing bookings."""

    def test_buffered_proposal_hits_existing_booking(self):
        """10:40-11:10 buffered by 15 min reaches back into a 10:00-10:30 booking."""
        existing = [_slot("10:00", "10:30", slot_id="a1")]
        proposed = add_buffer_time(_slot("10:40", "11:10"), 15)

        conflicts = find_conflicts(proposed, existing)

        assert [slot.id for slot in conflicts] == ["a1"]

    def test_touching_boundaries_do_not_conflict(self):
        existing = [_slot("10:00", "10:30", slot_id="a1")]
        proposed = add_buffer_time(_slot("10:45", "11:15"), 15)  # buffered 10:30-11:30

        assert find_conflicts(proposed, existing) == []
        assert is_slot_available(proposed, existing)

    def test_existing_slots_are_not_buffered(self):
        """Only the proposal is widened: a 10:30 start with no buffer fits right after."""
        existing = [_slot("10:00", "10:30", slot_id="a1")]

        assert find_conflicts(_slot("10:30", "11:00"), existing) == []

    def test_other_providers_are_ignored(self):
        existing = [_slot("10:00", "10:30", provider="dr-bruno", slot_id="b1")]

        assert find_conflicts(_slot("10:00", "10:30"), existing) == []

    def test_returns_every_conflicting_slot(self):
        existing = [
            _slot("09:00", "09:30", slot_id="a1"),
            _slot("10:00", "10:30", slot_id="a2"),
            _slot("11:00", "11:30", slot_id="a3"),
        ]
        proposed = add_buffer_time(_slot("09:30", "10:45"), 15)  # 09:15-11:00

        conflicts = find_conflicts(proposed, existing)

        assert {slot.id for slot in conflicts} == {"a1", "a2"}

    def test_slot_does_not_conflict_with_itself(self):
        """Moving a booking must not be blocked by its own old position."""
        existing = [_slot("10:00", "10:30", slot_id="a1")]
        moved = _slot("10:15", "10:45", slot_id="a1")

        assert not has_overlap(moved, existing[0])
        assert find_conflicts(moved, existing) == []

    def test_contained_interval_conflicts(self):
        existing = [_slot("09:00", "12:00", slot_id="long")]

        assert has_overlap(_slot("10:00", "10:30"), existing[0])

    def test_empty_existing_set(self):
        assert find_conflicts(_slot("10:00", "10:30"), []) == []
