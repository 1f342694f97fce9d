"""Data models for the notification center."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from ..events import NotificationCategory


@dataclass
class Notification:
    """Notification shown to the user."""

    title: str
    message: str
    category: NotificationCategory
    symbol: Optional[str] = None
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    read: bool = False
