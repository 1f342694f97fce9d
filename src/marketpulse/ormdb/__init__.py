"""ORM database layer backing remote sync."""

from .database import Base, Database, create_engine_for_url, get_database
from .models import RemotePosition, RemotePriceAlert, RemoteWatchlistEntry

__all__ = [
    "Base",
    "Database",
    "RemotePosition",
    "RemotePriceAlert",
    "RemoteWatchlistEntry",
    "create_engine_for_url",
    "get_database",
]
