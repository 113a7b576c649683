"""
Webhook notifier for waitlist slot offers (e.g. an n8n WhatsApp workflow).
"""

import logging
from typing import Any, Dict, Optional

import requests

from ..domain.exceptions import NotificationError
from ..domain.models import FreedSlot, WaitlistEntry

logger = logging.getLogger(__name__)

PLACEHOLDER_HOSTS = ("your-n8n-instance.com", "example.invalid")


class WebhookNotifier:
    """
    Posts one JSON offer per candidate to a configured webhook.

    Any transport error, timeout or non-2xx answer is raised as
    NotificationError so the auto-fill run records a failed delivery.
    """

    def __init__(self, webhook_url: str, timeout_seconds: float = 10.0, session: Optional[requests.Session] = None):
        """
        Initialize the notifier.

        Args:
            webhook_url: Endpoint receiving the offer payloads
            timeout_seconds: Upper bound for each POST
            session: Optional shared requests session
        """
        if not webhook_url or any(host in webhook_url for host in PLACEHOLDER_HOSTS):
            raise ValueError("Waitlist webhook URL is not configured")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be greater than zero")

        self.webhook_url = webhook_url
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.headers = {"Content-Type": "application/json"}

    @staticmethod
    def build_payload(candidate: WaitlistEntry, freed: FreedSlot) -> Dict[str, Any]:
        return {
            "waitlistId": candidate.id,
            "patientId": candidate.patient_id,
            "serviceName": freed.service_type,
            "providerId": freed.provider_id,
            "availableSlot": freed.start.to_iso8601_string(),
        }

    def notify(self, candidate: WaitlistEntry, freed: FreedSlot) -> bool:
        """
        Send the slot offer for one candidate.

        Raises:
            NotificationError: If the webhook call fails
        """
        try:
            response = self.session.post(
                self.webhook_url,
                headers=self.headers,
                json=self.build_payload(candidate, freed),
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()

        except requests.exceptions.RequestException as e:
            raise NotificationError(f"Waitlist webhook failed for entry {candidate.id}: {e}") from e

        logger.debug("Webhook accepted offer for entry %s (%s)", candidate.id, response.status_code)
        return True
