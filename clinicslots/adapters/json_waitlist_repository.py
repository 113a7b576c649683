"""
Waitlist repository persisted to a JSON file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List

from ..domain.models import WaitlistEntry
from ..services.waitlist import InMemoryWaitlistRepository

logger = logging.getLogger(__name__)


def load_entries(path: Path) -> List[WaitlistEntry]:
    """
    Read waitlist entries from ``path``. A missing file is an empty waitlist.

    Raises:
        ValueError: If the file is not a valid waitlist store
    """
    if not path.exists():
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid waitlist store {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Waitlist store {path} must contain a mapping at the root level.")

    entries: List[WaitlistEntry] = []
    for item in raw.get("entries", []):
        try:
            entries.append(WaitlistEntry.from_dict(item))
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Invalid waitlist entry in {path}: {exc}") from exc
    return entries


def save_entries(path: Path, entries: List[WaitlistEntry]) -> None:
    data = {"entries": [entry.to_dict() for entry in entries]}

    folder = path.resolve().parent
    folder.mkdir(parents=True, exist_ok=True)

    # Atomic write
    with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=folder, suffix=".tmp") as tf:
        json.dump(data, tf, ensure_ascii=False, indent=2)
        tmp_name = tf.name

    os.replace(tmp_name, path)


class JsonFileWaitlistRepository(InMemoryWaitlistRepository):
    """
    In-process waitlist that writes through to a JSON file on every change.

    Only one process should write a given file at a time.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(load_entries(self.path))
        logger.debug("Loaded %d waitlist entr(y/ies) from %s", len(self._entries), self.path)

    def _commit(self, entries: Dict[str, WaitlistEntry]) -> None:
        # Persist first so a failed write leaves memory unchanged.
        save_entries(self.path, sorted(entries.values(), key=lambda e: (e.created_at, e.id)))
        self._entries = entries
