"""
Reporting Engine - Notification Service

User-facing notices (success / info / error) raised by the import, export
and report-generation boundaries. Notices are kept in memory for the caller
to render and forwarded to an optional sink.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass
class Notification:
    type: NotificationType
    message: str
    created_at: datetime = field(default_factory=datetime.utcnow)


class Notifier:
    """Collects user-facing notices."""
    
    def __init__(self, sink: Optional[Callable[[Notification], None]] = None):
        self.sink = sink
        self.notifications: List[Notification] = []
    
    def success(self, message: str) -> Notification:
        return self._push(NotificationType.SUCCESS, message)
    
    def info(self, message: str) -> Notification:
        return self._push(NotificationType.INFO, message)
    
    def error(self, message: str) -> Notification:
        return self._push(NotificationType.ERROR, message)
    
    def of_type(self, notification_type: NotificationType) -> List[Notification]:
        return [n for n in self.notifications if n.type == notification_type]
    
    def clear(self) -> None:
        self.notifications.clear()
    
    def _push(self, notification_type: NotificationType, message: str) -> Notification:
        notification = Notification(type=notification_type, message=message)
        self.notifications.append(notification)
        
        if notification_type == NotificationType.ERROR:
            logger.error(f"Notification: {message}")
        else:
            logger.info(f"Notification ({notification_type.value}): {message}")
        
        if self.sink is not None:
            self.sink(notification)
        return notification
