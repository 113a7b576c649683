"""
Offer freed slots to the best-ranked waitlist candidates.

When an appointment is cancelled or moved away, the top candidates for that
service are notified one after the other. A failing notification never stops
the remaining candidates and never marks the failed candidate as notified.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from ..domain.exceptions import ClinicSlotsError
from ..domain.models import FreedSlot, WaitlistEntry, WaitlistStatus
from .waitlist import WaitlistQueue

logger = logging.getLogger(__name__)

DEFAULT_FAN_OUT = 5


class Notifier(Protocol):
    """
    Outbound delivery of a slot offer to one candidate.

    Returning False and raising are both treated as a failed delivery.
    Implementations are expected to bound each call with a timeout.
    """

    def notify(self, candidate: WaitlistEntry, freed: FreedSlot) -> bool:
        """Deliver the offer; return True on success."""


@dataclass(frozen=True)
class NotificationOutcome:
    """Result of offering the freed slot to one candidate."""
    entry_id: str
    patient_id: str
    delivered: bool
    marked_notified: bool = False
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.delivered and self.marked_notified


@dataclass
class AutoFillReport:
    """Per-candidate outcomes of one auto-fill run, in notification order."""
    freed: FreedSlot
    outcomes: List[NotificationOutcome] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def notified(self) -> List[str]:
        return [outcome.entry_id for outcome in self.outcomes if outcome.succeeded]

    @property
    def failed(self) -> List[str]:
        return [outcome.entry_id for outcome in self.outcomes if not outcome.succeeded]


class AutoFillNotifier:
    """
    Notifies the top ``fan_out`` ACTIVE candidates for a freed slot.

    Candidate order is exactly the waitlist order (priority, then FIFO).
    """

    def __init__(
        self,
        waitlist: WaitlistQueue,
        notifier: Notifier,
        fan_out: int = DEFAULT_FAN_OUT,
    ) -> None:
        if fan_out <= 0:
            raise ValueError("fan_out must be greater than zero")
        self._waitlist = waitlist
        self._notifier = notifier
        self._fan_out = fan_out

    def candidates_for(self, freed: FreedSlot) -> List[WaitlistEntry]:
        """
        ACTIVE entries for the freed service, best first.

        When the freed slot has a provider, entries tied to another provider
        are excluded; entries without a preference always match.
        """
        entries = self._waitlist.list(
            status=WaitlistStatus.ACTIVE,
            service_type=freed.service_type,
            provider_id=freed.provider_id,
        )
        return entries[: self._fan_out]

    def notify_waitlist_for_freed_slot(self, freed: FreedSlot) -> AutoFillReport:
        """
        Offer ``freed`` to the best candidates and record every outcome.

        Never raises for individual delivery failures.
        """
        report = AutoFillReport(freed=freed)
        candidates = self.candidates_for(freed)

        if not candidates:
            logger.info(
                "No active waitlist entries for service=%s provider=%s",
                freed.service_type, freed.provider_id,
            )
            return report

        for candidate in candidates:
            report.outcomes.append(self._offer(candidate, freed))

        logger.info(
            "Auto-fill for service=%s at %s: %d attempted, %d notified, %d failed",
            freed.service_type,
            freed.start.to_iso8601_string(),
            report.attempted,
            len(report.notified),
            len(report.failed),
        )
        return report

    def _offer(self, candidate: WaitlistEntry, freed: FreedSlot) -> NotificationOutcome:
        try:
            delivered = bool(self._notifier.notify(candidate, freed))
        except Exception as exc:
            logger.warning(
                "Failed to notify waitlist entry %s (%s: %s)",
                candidate.id, type(exc).__name__, exc,
            )
            return NotificationOutcome(
                entry_id=candidate.id,
                patient_id=candidate.patient_id,
                delivered=False,
                error=f"{type(exc).__name__}: {exc}",
            )

        if not delivered:
            logger.warning("Notifier rejected waitlist entry %s", candidate.id)
            return NotificationOutcome(
                entry_id=candidate.id,
                patient_id=candidate.patient_id,
                delivered=False,
                error="notifier reported failure",
            )

        try:
            self._waitlist.update_status(candidate.id, WaitlistStatus.NOTIFIED)
        except ClinicSlotsError as exc:
            # Entry left ACTIVE while the message was in flight.
            logger.warning("Notified entry %s but could not mark it: %s", candidate.id, exc)
            return NotificationOutcome(
                entry_id=candidate.id,
                patient_id=candidate.patient_id,
                delivered=True,
                error=str(exc),
            )

        logger.info("Waitlist notification sent to patient %s (entry %s)", candidate.patient_id, candidate.id)
        return NotificationOutcome(
            entry_id=candidate.id,
            patient_id=candidate.patient_id,
            delivered=True,
            marked_notified=True,
        )


class AutoFillDispatcher:
    """
    Runs auto-fill off the request path and keeps the outcome observable.

    ``dispatch`` returns a Future resolving to the AutoFillReport; the result
    (or an unexpected crash) is logged when the task finishes.
    """

    def __init__(self, notifier: AutoFillNotifier, max_workers: int = 1):
        self._notifier = notifier
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="autofill")

    def dispatch(self, freed: FreedSlot) -> "Future[AutoFillReport]":
        future = self._executor.submit(self._notifier.notify_waitlist_for_freed_slot, freed)
        future.add_done_callback(self._log_result)
        return future

    @staticmethod
    def _log_result(future: "Future[AutoFillReport]") -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Auto-fill task failed (%s: %s)", type(exc).__name__, exc)
            return
        report = future.result()
        logger.debug(
            "Auto-fill task finished for service=%s: notified=%s failed=%s",
            report.freed.service_type, report.notified, report.failed,
        )

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "AutoFillDispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)
