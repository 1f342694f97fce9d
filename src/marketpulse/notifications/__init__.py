"""Notification center."""

from .center import NotificationCenter
from .models import Notification

__all__ = ["Notification", "NotificationCenter"]
