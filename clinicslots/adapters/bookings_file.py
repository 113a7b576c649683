"""
Load existing bookings from a JSON file for availability and conflict checks.

File format:
[
    {"id": "a1", "providerId": "dr-ana", "start": "2026-03-02T10:00", "end": "2026-03-02T10:30"}
]
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

import pendulum

from ..domain.models import TimeSlot
from ..domain.schedule import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)


def load_bookings(
    path: Optional[Path],
    timezone: str = DEFAULT_TIMEZONE,
    provider_id: Optional[str] = None,
) -> List[TimeSlot]:
    """
    Load booked slots, optionally only those of one provider.

    Times without an offset are read in ``timezone``.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a list of bookings
    """
    if path is None:
        return []

    if not path.exists():
        raise FileNotFoundError(f"Bookings file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            events = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(events, list):
        raise ValueError(f"Bookings file {path} must contain a list.")

    slots: List[TimeSlot] = []
    for event in events:
        if provider_id is not None and event.get("providerId") != provider_id:
            continue

        try:
            slots.append(
                TimeSlot(
                    id=str(event["id"]) if event.get("id") is not None else None,
                    provider_id=str(event["providerId"]),
                    start=pendulum.parse(event["start"], tz=timezone),
                    end=pendulum.parse(event["end"], tz=timezone),
                )
            )
        except (KeyError, ValueError) as e:
            logger.warning("Skipping invalid booking %r: %s", event, e)
            continue

    return slots
