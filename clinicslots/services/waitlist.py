"""
Priority-ordered waitlist of patients waiting for an opening.

The queue keeps the business rules (duplicate prevention, forward-only
lifecycle, priority-then-FIFO ordering) and delegates storage to a
repository. Storage is pluggable through ``WaitlistRepository`` so any
backend can be used as long as each call is atomic.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Protocol

import pendulum
from pendulum import DateTime

from ..domain.exceptions import DuplicateActiveEntry, InvalidStatusTransition, WaitlistEntryNotFound
from ..domain.models import Priority, WaitlistEntry, WaitlistStatus, sources_for

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_DAYS = 7

Clock = Callable[[], DateTime]


def utc_now() -> DateTime:
    return pendulum.now("UTC")


@dataclass(frozen=True)
class WaitlistFilter:
    """
    Selection criteria for waitlist queries.

    ``provider_id`` selects entries that would accept that provider, i.e.
    entries tied to it plus entries without a provider preference.
    """
    status: Optional[WaitlistStatus] = None
    service_type: Optional[str] = None
    provider_id: Optional[str] = None

    def matches(self, entry: WaitlistEntry) -> bool:
        if self.status is not None and entry.status is not self.status:
            return False
        if self.service_type is not None and entry.service_type != self.service_type:
            return False
        return entry.accepts_provider(self.provider_id)


class WaitlistRepository(Protocol):
    """Storage operations the queue needs. Each call must be atomic."""

    def add(self, entry: WaitlistEntry) -> WaitlistEntry:
        """Insert an entry, raising DuplicateActiveEntry on an ACTIVE clash."""

    def get(self, entry_id: str) -> Optional[WaitlistEntry]:
        """Return the entry or None."""

    def find(self, criteria: WaitlistFilter) -> List[WaitlistEntry]:
        """Return matching entries in any order."""

    def transition(
        self,
        entry_id: str,
        target: WaitlistStatus,
        allowed_from: FrozenSet[WaitlistStatus],
    ) -> WaitlistEntry:
        """Compare-and-set the status of one entry."""

    def expire_overdue(self, now: DateTime) -> List[WaitlistEntry]:
        """Move every ACTIVE entry with expires_at < now to EXPIRED."""


class InMemoryWaitlistRepository:
    """
    Thread-safe in-process waitlist storage.

    The duplicate check runs under the same lock as the insert, which makes
    it behave like a unique constraint on ACTIVE ``(patient, service)``.
    """

    def __init__(self, entries: Iterable[WaitlistEntry] = ()):
        self._lock = threading.RLock()
        self._entries: Dict[str, WaitlistEntry] = {entry.id: entry for entry in entries}

    def _commit(self, entries: Dict[str, WaitlistEntry]) -> None:
        """Make ``entries`` the new state. Subclasses persist here."""
        self._entries = entries

    def add(self, entry: WaitlistEntry) -> WaitlistEntry:
        with self._lock:
            if entry.is_active:
                for other in self._entries.values():
                    if (
                        other.is_active
                        and other.patient_id == entry.patient_id
                        and other.service_type == entry.service_type
                    ):
                        raise DuplicateActiveEntry(entry.patient_id, entry.service_type, other.id)

            if entry.id in self._entries:
                raise ValueError(f"Waitlist entry id already used: {entry.id}")

            updated = dict(self._entries)
            updated[entry.id] = entry
            self._commit(updated)
            return entry

    def get(self, entry_id: str) -> Optional[WaitlistEntry]:
        with self._lock:
            return self._entries.get(entry_id)

    def find(self, criteria: WaitlistFilter) -> List[WaitlistEntry]:
        with self._lock:
            return [entry for entry in self._entries.values() if criteria.matches(entry)]

    def transition(
        self,
        entry_id: str,
        target: WaitlistStatus,
        allowed_from: FrozenSet[WaitlistStatus],
    ) -> WaitlistEntry:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                raise WaitlistEntryNotFound(f"Waitlist entry not found: {entry_id}")

            if entry.status is target:
                return entry

            if entry.status not in allowed_from:
                raise InvalidStatusTransition(
                    f"Waitlist entry {entry_id} cannot move from "
                    f"{entry.status.value} to {target.value}"
                )

            changed = entry.with_status(target)
            updated = dict(self._entries)
            updated[entry_id] = changed
            self._commit(updated)
            return changed

    def expire_overdue(self, now: DateTime) -> List[WaitlistEntry]:
        with self._lock:
            overdue = [entry for entry in self._entries.values() if entry.is_overdue(now)]
            if not overdue:
                return []

            updated = dict(self._entries)
            expired: List[WaitlistEntry] = []
            for entry in overdue:
                changed = entry.with_status(WaitlistStatus.EXPIRED)
                updated[entry.id] = changed
                expired.append(changed)

            self._commit(updated)
            return expired


class WaitlistQueue:
    """
    Priority queue facade over a waitlist repository.

    Listing order is URGENT before CONVENIENCE, then oldest request first.
    Callers must use that order as-is.
    """

    def __init__(
        self,
        repository: WaitlistRepository,
        clock: Clock = utc_now,
        expiry_days: int = DEFAULT_EXPIRY_DAYS,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        if expiry_days <= 0:
            raise ValueError("expiry_days must be greater than zero")
        self._repository = repository
        self._clock = clock
        self._expiry_days = expiry_days
        self._id_factory = id_factory

    def enqueue(
        self,
        patient_id: str,
        service_type: str,
        *,
        priority: Priority = Priority.CONVENIENCE,
        provider_id: Optional[str] = None,
        notes: Optional[str] = None,
        preferred_date: Optional[DateTime] = None,
    ) -> WaitlistEntry:
        """
        Add a patient to the waitlist for a service.

        Raises:
            DuplicateActiveEntry: The patient is already waiting for this service
        """
        now = self._clock()
        entry = WaitlistEntry(
            id=self._id_factory(),
            patient_id=patient_id,
            service_type=service_type,
            provider_id=provider_id,
            priority=priority,
            status=WaitlistStatus.ACTIVE,
            notes=notes,
            preferred_date=preferred_date,
            created_at=now,
            expires_at=now.add(days=self._expiry_days),
        )

        try:
            stored = self._repository.add(entry)
        except DuplicateActiveEntry as exc:
            logger.info(
                "Rejected duplicate waitlist entry for patient=%s service=%s (existing=%s)",
                patient_id, service_type, exc.existing_id,
            )
            raise

        logger.info(
            "Waitlist entry %s added: patient=%s service=%s priority=%s",
            stored.id, patient_id, service_type, priority.value,
        )
        return stored

    def list(
        self,
        status: Optional[WaitlistStatus] = None,
        service_type: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> List[WaitlistEntry]:
        """Return matching entries, priority descending then created_at ascending."""
        criteria = WaitlistFilter(status=status, service_type=service_type, provider_id=provider_id)
        return sorted(self._repository.find(criteria), key=WaitlistEntry.queue_key)

    def get(self, entry_id: str) -> WaitlistEntry:
        entry = self._repository.get(entry_id)
        if entry is None:
            raise WaitlistEntryNotFound(f"Waitlist entry not found: {entry_id}")
        return entry

    def remove(self, entry_id: str) -> WaitlistEntry:
        """Mark an ACTIVE entry as REMOVED. No-op for entries that already left ACTIVE."""
        entry = self.get(entry_id)
        if not entry.is_active:
            return entry

        try:
            removed = self._repository.transition(
                entry_id, WaitlistStatus.REMOVED, frozenset({WaitlistStatus.ACTIVE})
            )
        except InvalidStatusTransition:
            # Left ACTIVE concurrently; removal is then a no-op.
            return self.get(entry_id)

        logger.info("Waitlist entry %s removed", entry_id)
        return removed

    def update_status(self, entry_id: str, status: WaitlistStatus) -> WaitlistEntry:
        """
        Move an entry forward in its lifecycle.

        Raises:
            InvalidStatusTransition: The move goes backwards or leaves a terminal state
            WaitlistEntryNotFound: Unknown entry id
        """
        if status is WaitlistStatus.ACTIVE:
            raise InvalidStatusTransition(
                f"Waitlist entry {entry_id} cannot be moved back to ACTIVE"
            )

        updated = self._repository.transition(entry_id, status, sources_for(status))
        logger.debug("Waitlist entry %s is now %s", entry_id, updated.status.value)
        return updated

    def expire_overdue(self, now: Optional[DateTime] = None) -> List[WaitlistEntry]:
        """Expire every ACTIVE entry past its expiry. Meant to be run periodically."""
        now = now if now is not None else self._clock()
        expired = self._repository.expire_overdue(now)
        if expired:
            logger.info("Expired %d waitlist entr(y/ies)", len(expired))
        return expired
