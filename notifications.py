"""In-memory queue of user-visible notifications (toasts)."""

from __future__ import annotations

import copy
import threading
import uuid
from datetime import datetime, timezone
from typing import List

SUCCESS = "success"
ERROR = "error"
INFO = "info"
LEVELS = (SUCCESS, ERROR, INFO)


def make_notification(level: str, message: str, page: str | None = None) -> dict:
    if level not in LEVELS:
        raise ValueError(f"Unknown notification level: {level}")
    if not isinstance(message, str) or not message.strip():
        raise ValueError("Notification message is required")
    return {
        "id": str(uuid.uuid4()),
        "level": level,
        "message": message.strip(),
        "page": page,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


class NotificationQueue:
    def __init__(self) -> None:
        self._items: List[dict] = []
        self._lock = threading.Lock()

    def push(self, level: str, message: str, page: str | None = None) -> dict:
        item = make_notification(level, message, page)
        with self._lock:
            self._items.append(item)
        return copy.deepcopy(item)

    def success(self, message: str, page: str | None = None) -> dict:
        return self.push(SUCCESS, message, page)

    def error(self, message: str, page: str | None = None) -> dict:
        return self.push(ERROR, message, page)

    def pending(self, page: str | None = None) -> list[dict]:
        with self._lock:
            items = [copy.deepcopy(n) for n in self._items]
        if page is not None:
            items = [n for n in items if n.get("page") == page]
        return items

    def ack(self, notification_id: str) -> bool:
        with self._lock:
            for idx, item in enumerate(self._items):
                if item.get("id") == notification_id:
                    del self._items[idx]
                    return True
        return False

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
