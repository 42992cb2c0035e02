"""
Notification Center

Holds the dismissible notices shown to editors after fetches and actions.
In-memory and bounded; the newest notice is first.
"""
import uuid
from collections import deque
from typing import Deque, List, Optional

from newsdesk.core.logging_config import get_logger
from newsdesk.models import Notification, NotificationVariant

logger = get_logger(__name__)


class NotificationCenter:
    def __init__(self, max_notifications: int = 50):
        self._notifications: Deque[Notification] = deque(maxlen=max_notifications)

    def notify(
        self,
        title: str,
        description: str = "",
        variant: NotificationVariant = NotificationVariant.DEFAULT
    ) -> Notification:
        notification = Notification(
            id=uuid.uuid4().hex[:12],
            title=title,
            description=description,
            variant=variant
        )
        self._notifications.appendleft(notification)

        if variant == NotificationVariant.DESTRUCTIVE:
            logger.warning(f"Notice: {title} - {description}")
        else:
            logger.info(f"Notice: {title} - {description}")
        return notification

    def success(self, title: str, description: str = "") -> Notification:
        return self.notify(title, description, NotificationVariant.DEFAULT)

    def error(self, title: str, description: str = "") -> Notification:
        return self.notify(title, description, NotificationVariant.DESTRUCTIVE)

    def list(self, limit: Optional[int] = None) -> List[Notification]:
        items = list(self._notifications)
        return items[:limit] if limit else items

    def dismiss(self, notification_id: str) -> bool:
        for notification in self._notifications:
            if notification.id == notification_id:
                self._notifications.remove(notification)
                return True
        return False

    def clear(self) -> None:
        self._notifications.clear()
