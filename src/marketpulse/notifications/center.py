"""In-process notification center fed by the event bus."""

from typing import List, Optional

from ..config.logging import get_logger
from ..events import EventBus, NotificationCategory, NotificationEvent
from .models import Notification

logger = get_logger(__name__)

MAX_NOTIFICATIONS = 50


class NotificationCenter:
    """Keeps the newest notifications, newest first."""

    def __init__(self, event_bus: Optional[EventBus] = None, limit: int = MAX_NOTIFICATIONS):
        self.limit = limit
        self._notifications: List[Notification] = []
        self.logger = logger.bind(component="notification_center")
        self._event_bus = event_bus
        if event_bus is not None:
            event_bus.subscribe(NotificationEvent, self.handle_event)

    def close(self) -> None:
        if self._event_bus is not None:
            self._event_bus.unsubscribe(NotificationEvent, self.handle_event)
            self._event_bus = None

    def handle_event(self, event: NotificationEvent) -> None:
        self.add(event.title, event.message, event.category, event.symbol)

    def add(
        self,
        title: str,
        message: str,
        category: NotificationCategory = NotificationCategory.SYSTEM,
        symbol: Optional[str] = None,
    ) -> Notification:
        notification = Notification(title, message, category, symbol)
        self._notifications.insert(0, notification)
        del self._notifications[self.limit :]

        self.logger.info(
            "Notification",
            title=title,
            message=message,
            category=category.value,
            symbol=symbol,
        )
        return notification

    @property
    def notifications(self) -> List[Notification]:
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    def mark_as_read(self, notification_id: str) -> bool:
        for notification in self._notifications:
            if notification.id == notification_id:
                notification.read = True
                return True
        return False

    def mark_all_as_read(self) -> None:
        for notification in self._notifications:
            notification.read = True

    def clear(self) -> None:
        self._notifications.clear()
