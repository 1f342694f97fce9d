"""Domain events for the market dashboard."""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationCategory(Enum):
    """Categories shown by the notification center."""

    ALERT = "alert"
    NEWS = "news"
    AI = "ai"
    SOCIAL = "social"
    SYSTEM = "system"


@dataclass
class DomainEvent(ABC):
    """Base class for all domain events."""

    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=_utcnow)
    event_version: str = "1.0"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        result = {
            "event_type": self.__class__.__name__,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "event_version": self.event_version,
            "metadata": self.metadata,
        }

        # Add event-specific fields
        for field_name, field_value in self.__dict__.items():
            if field_name not in ["event_id", "timestamp", "event_version", "metadata"]:
                if isinstance(field_value, datetime):
                    result[field_name] = field_value.isoformat()
                elif isinstance(field_value, Enum):
                    result[field_name] = field_value.value
                else:
                    result[field_name] = field_value

        return result


@dataclass
class NotificationEvent(DomainEvent):
    """Fire-and-forget message for any interested listener."""

    title: str = ""
    message: str = ""
    category: NotificationCategory = NotificationCategory.ALERT
    symbol: Optional[str] = None


@dataclass
class QuotesRefreshedEvent(DomainEvent):
    """Event triggered after a price poll has been applied to the stores."""

    symbols: List[str] = field(default_factory=list)
    unavailable: List[str] = field(default_factory=list)
    from_cache: bool = False


@dataclass
class SyncCompletedEvent(DomainEvent):
    """Event triggered when a remote sync finishes."""

    user_id: str = ""
    success: bool = True
    positions: int = 0
    watchlist: int = 0
    alerts: int = 0
    error_message: Optional[str] = None
