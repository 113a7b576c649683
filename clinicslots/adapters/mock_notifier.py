"""
Mock notifier for running auto-fill without a real messaging backend.
"""

import logging
from typing import Iterable, List, Tuple

from ..domain.models import FreedSlot, WaitlistEntry

logger = logging.getLogger(__name__)


class MockNotifier:
    """
    Records every offer instead of sending it.

    Patients listed in ``failing_patients`` are answered with a failure so
    partial-failure handling can be exercised from the CLI and in tests.
    """

    def __init__(self, failing_patients: Iterable[str] = ()):
        self.failing_patients = set(failing_patients)
        self.sent: List[Tuple[str, FreedSlot]] = []

    def notify(self, candidate: WaitlistEntry, freed: FreedSlot) -> bool:
        if candidate.patient_id in self.failing_patients:
            logger.info("Mock notifier: simulated failure for patient %s", candidate.patient_id)
            return False

        self.sent.append((candidate.id, freed))
        logger.info(
            "Mock notifier: offered %s at %s to patient %s",
            freed.service_type,
            freed.start.format("DD/MM/YYYY HH:mm"),
            candidate.patient_id,
        )
        return True
