"""Event-driven architecture components."""

from .event_bus import EventBus, EventHandler
from .events import (
    DomainEvent,
    NotificationCategory,
    NotificationEvent,
    QuotesRefreshedEvent,
    SyncCompletedEvent,
)

__all__ = [
    # Events
    "DomainEvent",
    "NotificationCategory",
    "NotificationEvent",
    "QuotesRefreshedEvent",
    "SyncCompletedEvent",
    # Event Bus
    "EventBus",
    "EventHandler",
]
