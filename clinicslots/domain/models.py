"""
Domain models for booked slots and waitlist entries.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Optional

import pendulum
from pendulum import DateTime


@dataclass(frozen=True)
class TimeSlot:
    """
    A half-open ``[start, end)`` interval owned by one provider.

    Invariant: start must be before end.
    """
    provider_id: str
    start: DateTime
    end: DateTime
    id: Optional[str] = None

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeSlot") -> bool:
        """Check if the two intervals overlap, ignoring the provider."""
        return self.start < other.end and other.start < self.end

    def shifted(self, before_minutes: int, after_minutes: int) -> "TimeSlot":
        """Return a copy with start moved earlier and end moved later."""
        return replace(
            self,
            start=self.start.subtract(minutes=before_minutes),
            end=self.end.add(minutes=after_minutes),
        )

    def __str__(self) -> str:
        label = f" #{self.id}" if self.id else ""
        return (
            f"{self.provider_id}{label}: "
            f"{self.start.format('DD/MM/YYYY HH:mm')} - {self.end.format('HH:mm')}"
        )


class Priority(str, Enum):
    """Coarse ranking tier applied above FIFO ordering."""
    URGENT = "URGENT"
    CONVENIENCE = "CONVENIENCE"

    @property
    def rank(self) -> int:
        """Higher rank is served first."""
        return 1 if self is Priority.URGENT else 0


class WaitlistStatus(str, Enum):
    ACTIVE = "ACTIVE"
    NOTIFIED = "NOTIFIED"
    EXPIRED = "EXPIRED"
    FULFILLED = "FULFILLED"
    REMOVED = "REMOVED"


# Forward-only lifecycle. Nothing ever returns to ACTIVE.
ALLOWED_TRANSITIONS: Dict[WaitlistStatus, FrozenSet[WaitlistStatus]] = {
    WaitlistStatus.ACTIVE: frozenset({
        WaitlistStatus.NOTIFIED,
        WaitlistStatus.EXPIRED,
        WaitlistStatus.REMOVED,
        WaitlistStatus.FULFILLED,
    }),
    WaitlistStatus.NOTIFIED: frozenset({
        WaitlistStatus.REMOVED,
        WaitlistStatus.FULFILLED,
    }),
    WaitlistStatus.EXPIRED: frozenset(),
    WaitlistStatus.FULFILLED: frozenset(),
    WaitlistStatus.REMOVED: frozenset(),
}


def can_transition(current: WaitlistStatus, target: WaitlistStatus) -> bool:
    """Check whether ``current -> target`` follows the waitlist lifecycle."""
    return target in ALLOWED_TRANSITIONS[current]


def sources_for(target: WaitlistStatus) -> FrozenSet[WaitlistStatus]:
    """Return every status from which ``target`` may be reached."""
    return frozenset(
        status for status, targets in ALLOWED_TRANSITIONS.items()
        if target in targets
    )


@dataclass(frozen=True)
class WaitlistEntry:
    """
    A standing request for the next opening of a service.

    ``provider_id`` of None means the patient accepts any provider.
    """
    id: str
    patient_id: str
    service_type: str
    created_at: DateTime
    expires_at: DateTime
    priority: Priority = Priority.CONVENIENCE
    status: WaitlistStatus = WaitlistStatus.ACTIVE
    provider_id: Optional[str] = None
    preferred_date: Optional[DateTime] = None
    notes: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status is WaitlistStatus.ACTIVE

    def is_overdue(self, now: DateTime) -> bool:
        return self.is_active and self.expires_at < now

    def accepts_provider(self, provider_id: Optional[str]) -> bool:
        """True if this entry would take a slot with the given provider."""
        if provider_id is None or self.provider_id is None:
            return True
        return self.provider_id == provider_id

    def with_status(self, status: WaitlistStatus) -> "WaitlistEntry":
        return replace(self, status=status)

    def queue_key(self):
        """Sort key: priority descending, then oldest first."""
        return (-self.priority.rank, self.created_at, self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "patientId": self.patient_id,
            "serviceType": self.service_type,
            "providerId": self.provider_id,
            "priority": self.priority.value,
            "status": self.status.value,
            "notes": self.notes,
            "preferredDate": (
                self.preferred_date.to_iso8601_string() if self.preferred_date else None
            ),
            "createdAt": self.created_at.to_iso8601_string(),
            "expiresAt": self.expires_at.to_iso8601_string(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WaitlistEntry":
        preferred = data.get("preferredDate")
        return cls(
            id=str(data["id"]),
            patient_id=str(data["patientId"]),
            service_type=str(data["serviceType"]),
            provider_id=data.get("providerId"),
            priority=Priority(data.get("priority", Priority.CONVENIENCE.value)),
            status=WaitlistStatus(data.get("status", WaitlistStatus.ACTIVE.value)),
            notes=data.get("notes"),
            preferred_date=pendulum.parse(preferred) if preferred else None,
            created_at=pendulum.parse(data["createdAt"]),
            expires_at=pendulum.parse(data["expiresAt"]),
        )


@dataclass(frozen=True)
class FreedSlot:
    """
    A slot that just opened up through cancellation or rescheduling.

    ``provider_id`` of None means the opening is not tied to a provider.
    """
    service_type: str
    start: DateTime
    provider_id: Optional[str] = None
    source_slot_id: Optional[str] = field(default=None, compare=False)
