"""Repository for remote watchlist rows."""

from typing import List

from ..models import RemoteWatchlistEntry
from .base import BaseRepository


class WatchlistRepository(BaseRepository):
    """Repository for watchlist operations."""

    def list_symbols(self, user_id: str) -> List[str]:
        rows = (
            self.session.query(RemoteWatchlistEntry)
            .filter(RemoteWatchlistEntry.user_id == user_id)
            .order_by(RemoteWatchlistEntry.id)
            .all()
        )
        return [row.symbol for row in rows]

    def insert(self, user_id: str, symbol: str) -> bool:
        """Add a symbol; a duplicate is not an error."""
        symbol = symbol.upper()
        existing = (
            self.session.query(RemoteWatchlistEntry)
            .filter(
                RemoteWatchlistEntry.user_id == user_id,
                RemoteWatchlistEntry.symbol == symbol,
            )
            .first()
        )
        return self._add_if_absent(
            existing, RemoteWatchlistEntry(user_id=user_id, symbol=symbol)
        )

    def delete(self, user_id: str, symbol: str) -> bool:
        deleted = (
            self.session.query(RemoteWatchlistEntry)
            .filter(
                RemoteWatchlistEntry.user_id == user_id,
                RemoteWatchlistEntry.symbol == symbol.upper(),
            )
            .delete()
        )
        return deleted > 0
