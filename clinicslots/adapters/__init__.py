"""
Adapters layer - External integrations (webhook delivery, JSON files).
"""

from .bookings_file import load_bookings
from .json_waitlist_repository import JsonFileWaitlistRepository
from .mock_notifier import MockNotifier
from .webhook_notifier import WebhookNotifier

__all__ = ["load_bookings", "JsonFileWaitlistRepository", "MockNotifier", "WebhookNotifier"]
