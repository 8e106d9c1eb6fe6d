import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field

MAX_NOTIFICATIONS = 50


class Notification(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: str  # "success" | "error" | "warning" | "info"
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationCenter:
    """Cola de avisos para el usuario. Mostrarlos es cosa del frontend."""

    def __init__(self, limit: int = MAX_NOTIFICATIONS):
        self._lock = threading.Lock()
        self._items = deque(maxlen=limit)

    def add(self, type: str, message: str) -> Notification:
        notification = Notification(type=type, message=message)
        with self._lock:
            self._items.append(notification)
        return notification

    def list(self) -> List[Notification]:
        with self._lock:
            return list(self._items)

    def dismiss(self, notification_id: str) -> bool:
        with self._lock:
            for item in self._items:
                if item.id == notification_id:
                    self._items.remove(item)
                    return True
        return False

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
