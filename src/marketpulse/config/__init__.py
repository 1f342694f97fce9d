"""Configuration management for the MarketPulse application."""

from .logging import bind_session, clear_session, get_logger, setup_logging
from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "bind_session",
    "clear_session",
    "get_logger",
    "get_settings",
    "setup_logging",
]
