"""Local persisted state: positions, watchlist and price alerts."""

from .commands import Mutation
from .models import (
    AlertCondition,
    AllocationBreach,
    PortfolioSummary,
    Position,
    PriceAlert,
)
from .storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from .store import AlertStore, PortfolioStore, WatchlistStore

__all__ = [
    "AlertCondition",
    "AlertStore",
    "AllocationBreach",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "Mutation",
    "PortfolioStore",
    "PortfolioSummary",
    "Position",
    "PriceAlert",
    "WatchlistStore",
]
