"""
Domain-specific exception hierarchy for the clinic scheduling engine.
"""


class ClinicSlotsError(Exception):
    """Base class for all application-level errors."""


class DuplicateActiveEntry(ClinicSlotsError):
    """Raised when a patient already has an ACTIVE waitlist entry for a service."""

    def __init__(self, patient_id: str, service_type: str, existing_id: str):
        super().__init__(
            f"Patient {patient_id} already has an active waitlist entry "
            f"for '{service_type}' ({existing_id})"
        )
        self.patient_id = patient_id
        self.service_type = service_type
        self.existing_id = existing_id


class WaitlistEntryNotFound(ClinicSlotsError):
    """Raised when a waitlist entry id is unknown."""


class InvalidStatusTransition(ClinicSlotsError):
    """Raised when a waitlist entry would move against its lifecycle."""


class NotificationError(ClinicSlotsError):
    """Raised when a waitlist candidate cannot be notified."""
