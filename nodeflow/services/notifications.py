"""Notifier - the single transient message shown to the user.

Every run, abort or validation failure ends in at most one message. The
notifier logs it, keeps the last one for polling clients, and forwards it to
registered listeners (e.g. a UI bridge).
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from nodeflow.core.logging import get_logger
from nodeflow.models.execution import now_ms

logger = get_logger(__name__)


@dataclass
class Notification:
    message: str
    level: str = "info"
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "level": self.level, "timestamp": self.timestamp}


Listener = Callable[[Notification], None]


class Notifier:
    """Routes user-visible messages to logs and listeners."""

    def __init__(self):
        self._last: Optional[Notification] = None
        self._listeners: List[Listener] = []

    @property
    def last(self) -> Optional[Notification]:
        return self._last

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify(self, message: str, level: str = "info") -> Notification:
        notification = Notification(message=message, level=level)
        self._last = notification

        log = logger.error if level == "error" else logger.info
        log("Notification", message=message, level=level)

        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.warning("Notification listener failed", error=str(e))
        return notification

    def success(self, message: str) -> Notification:
        return self.notify(message, "success")

    def error(self, message: str) -> Notification:
        return self.notify(message, "error")
