"""
Booking admission, cancellation and rescheduling.

Admission is fetch-existing -> conflict check -> persist. The pure conflict
check cannot prevent two concurrent requests from both passing, so the whole
sequence runs under a lock per (provider, clinic-local day). A request holds
the lock of every day its buffered window touches.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Tuple

from pendulum import DateTime

from ..domain.conflict_detector import add_buffer_time, find_conflicts
from ..domain.models import FreedSlot, TimeSlot
from ..domain.schedule import DEFAULT_TIMEZONE
from .autofill import AutoFillDispatcher, AutoFillReport

logger = logging.getLogger(__name__)

DayKey = Tuple[str, str]


def day_keys(slot: TimeSlot, timezone: str) -> List[DayKey]:
    """
    Return the (provider, YYYY-MM-DD) keys of every clinic-local day the
    half-open interval of ``slot`` touches.
    """
    day = slot.start.in_timezone(timezone).date()
    last = slot.end.subtract(microseconds=1).in_timezone(timezone).date()

    keys: List[DayKey] = []
    while day <= last:
        keys.append((slot.provider_id, day.to_date_string()))
        day = day.add(days=1)
    return keys


class _DayLocks:
    """
    Lock table keyed by (provider, day).

    Entries are counted while held or awaited and dropped once unused, so the
    table only holds days with in-flight requests.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[DayKey, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, keys: Iterable[DayKey]) -> Iterator[None]:
        # Sorted acquisition order so overlapping requests cannot deadlock.
        ordered = sorted(set(keys))
        with self._guard:
            entries = []
            for key in ordered:
                entry = self._entries.setdefault(key, [threading.Lock(), 0])
                entry[1] += 1
                entries.append(entry)

        acquired = []
        try:
            for entry in entries:
                entry[0].acquire()
                acquired.append(entry)
            yield
        finally:
            for entry in reversed(acquired):
                entry[0].release()
            with self._guard:
                for key, entry in zip(ordered, entries):
                    entry[1] -= 1
                    if entry[1] == 0:
                        del self._entries[key]


class BookedSlotRepository(Protocol):
    """Read/write access to a provider's booked slots."""

    def list_between(self, provider_id: str, start: DateTime, end: DateTime) -> List[TimeSlot]:
        """Return the provider's slots whose interval overlaps ``[start, end)``."""

    def get(self, slot_id: str) -> Optional[TimeSlot]:
        """Return a booked slot by id."""

    def save(self, slot: TimeSlot) -> TimeSlot:
        """Insert or replace (by id) a booked slot."""

    def delete(self, slot_id: str) -> Optional[TimeSlot]:
        """Remove and return a booked slot, or None if unknown."""


class InMemoryBookedSlotRepository:
    """Process-local booked slot storage keyed by slot id."""

    def __init__(self, slots: Optional[List[TimeSlot]] = None):
        self._lock = threading.Lock()
        self._slots: Dict[str, TimeSlot] = {}
        self._counter = 0
        for slot in slots or []:
            self.save(slot)

    def _next_id(self) -> str:
        self._counter += 1
        return f"slot-{self._counter}"

    def list_between(self, provider_id: str, start: DateTime, end: DateTime) -> List[TimeSlot]:
        with self._lock:
            return sorted(
                (
                    slot for slot in self._slots.values()
                    if slot.provider_id == provider_id and slot.start < end and start < slot.end
                ),
                key=lambda s: s.start,
            )

    def get(self, slot_id: str) -> Optional[TimeSlot]:
        with self._lock:
            return self._slots.get(slot_id)

    def save(self, slot: TimeSlot) -> TimeSlot:
        with self._lock:
            if slot.id is None:
                slot = TimeSlot(
                    provider_id=slot.provider_id,
                    start=slot.start,
                    end=slot.end,
                    id=self._next_id(),
                )
            self._slots[slot.id] = slot
            return slot

    def delete(self, slot_id: str) -> Optional[TimeSlot]:
        with self._lock:
            return self._slots.pop(slot_id, None)


@dataclass
class BookingDecision:
    """Admit, or reject with the conflicting slots for diagnostics."""
    admitted: bool
    slot: Optional[TimeSlot] = None
    conflicts: List[TimeSlot] = field(default_factory=list)

    @property
    def conflicting_ids(self) -> List[str]:
        return [slot.id for slot in self.conflicts if slot.id is not None]


@dataclass
class Cancellation:
    """A removed booking and, when auto-fill is wired, its pending report."""
    freed: FreedSlot
    autofill: Optional["Future[AutoFillReport]"] = None


class BookingService:
    """
    Serialises admission per (provider, clinic-local day) and hands freed
    slots to auto-fill.

    Instants may arrive in any timezone; days are always counted in
    ``timezone``.
    """

    def __init__(
        self,
        repository: BookedSlotRepository,
        dispatcher: Optional[AutoFillDispatcher] = None,
        timezone: str = DEFAULT_TIMEZONE,
    ) -> None:
        self._repository = repository
        self._dispatcher = dispatcher
        self._timezone = timezone
        self._day_locks = _DayLocks()

    def admit(self, proposed: TimeSlot, buffer_minutes: int) -> BookingDecision:
        """
        Book ``proposed`` unless its buffered window hits an existing booking.

        ``proposed`` is unbuffered; existing bookings are compared as stored.
        """
        buffered = add_buffer_time(proposed, buffer_minutes)
        with self._day_locks.hold(day_keys(buffered, self._timezone)):
            return self._admit_locked(proposed, buffered)

    def _admit_locked(self, proposed: TimeSlot, buffered: TimeSlot) -> BookingDecision:
        existing = self._repository.list_between(proposed.provider_id, buffered.start, buffered.end)
        conflicts = find_conflicts(buffered, existing)

        if conflicts:
            decision = BookingDecision(admitted=False, conflicts=conflicts)
            logger.info(
                "Rejected booking for provider=%s at %s: conflicts with %s",
                proposed.provider_id,
                proposed.start.to_iso8601_string(),
                decision.conflicting_ids,
            )
            return decision

        stored = self._repository.save(proposed)
        logger.info("Admitted booking %s", stored)
        return BookingDecision(admitted=True, slot=stored)

    def cancel(self, slot_id: str, service_type: str) -> Optional[Cancellation]:
        """Remove a booking and offer its slot to the waitlist. None if unknown."""
        slot = self._repository.get(slot_id)
        if slot is None:
            return None

        with self._day_locks.hold(day_keys(slot, self._timezone)):
            removed = self._repository.delete(slot_id)

        if removed is None:
            return None

        logger.info("Cancelled booking %s", removed)
        return self._free(removed, service_type)

    def reschedule(
        self,
        slot_id: str,
        new_start: DateTime,
        new_end: DateTime,
        buffer_minutes: int,
        service_type: str,
    ) -> Tuple[BookingDecision, Optional[Cancellation]]:
        """
        Move a booking; the old position is offered to the waitlist on success.

        The moved slot keeps its id so it never conflicts with itself.

        Raises:
            KeyError: If the booking does not exist, or is cancelled while
                the move is being admitted
        """
        while True:
            current = self._repository.get(slot_id)
            if current is None:
                raise KeyError(f"Unknown booking: {slot_id}")

            moved = TimeSlot(provider_id=current.provider_id, start=new_start, end=new_end, id=slot_id)
            buffered = add_buffer_time(moved, buffer_minutes)
            keys = day_keys(current, self._timezone) + day_keys(buffered, self._timezone)

            with self._day_locks.hold(keys):
                # The booking may have been cancelled or moved before the locks were taken.
                latest = self._repository.get(slot_id)
                if latest is None:
                    raise KeyError(f"Booking {slot_id} was cancelled during reschedule")
                if latest != current:
                    continue
                decision = self._admit_locked(moved, buffered)
            break

        if not decision.admitted:
            return decision, None

        return decision, self._free(current, service_type)

    def _free(self, slot: TimeSlot, service_type: str) -> Cancellation:
        freed = FreedSlot(
            service_type=service_type,
            start=slot.start,
            provider_id=slot.provider_id,
            source_slot_id=slot.id,
        )
        if self._dispatcher is None:
            return Cancellation(freed=freed)
        return Cancellation(freed=freed, autofill=self._dispatcher.dispatch(freed))
