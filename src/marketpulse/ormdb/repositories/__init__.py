"""Repository classes for database operations using SQLAlchemy ORM."""

from .base import BaseRepository
from .position import PositionRepository
from .price_alert import PriceAlertRepository
from .watchlist import WatchlistRepository

__all__ = [
    "BaseRepository",
    "PositionRepository",
    "PriceAlertRepository",
    "WatchlistRepository",
]
