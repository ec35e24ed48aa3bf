"""
One-shot user notifications for musicbox.

Components publish short status messages ("Stream link ready.", "Search API
failed: 500"); the view drains them and shows each one once.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, List


@dataclass(frozen=True)
class Notification:
    """A single status message for the user."""

    message: str
    is_error: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "is_error": self.is_error,
            "created_at": self.created_at.isoformat(),
        }


class NotificationCenter:
    """Thread-safe buffer of pending notifications."""

    def __init__(self, max_pending: int = 50):
        self.logger = logging.getLogger(__name__)
        self._pending: Deque[Notification] = deque(maxlen=max_pending)
        self._lock = threading.Lock()

    def publish(self, message: str, is_error: bool = False) -> Notification:
        """Queue a message for the view and mirror it to the log."""
        notification = Notification(message=message, is_error=is_error)
        with self._lock:
            self._pending.append(notification)
        if is_error:
            self.logger.warning("Status: %s", message)
        else:
            self.logger.info("Status: %s", message)
        return notification

    def drain(self) -> List[Notification]:
        """Return and forget all pending notifications, oldest first."""
        with self._lock:
            items = list(self._pending)
            self._pending.clear()
        return items
