"""Repository for remote position rows."""

from typing import List, Optional

from ..models import RemotePosition
from .base import BaseRepository


class PositionRepository(BaseRepository):
    """Repository for position operations."""

    def get(self, user_id: str, symbol: str) -> Optional[RemotePosition]:
        return (
            self.session.query(RemotePosition)
            .filter(
                RemotePosition.user_id == user_id,
                RemotePosition.symbol == symbol.upper(),
            )
            .first()
        )

    def list_for_user(self, user_id: str) -> List[RemotePosition]:
        return (
            self.session.query(RemotePosition)
            .filter(RemotePosition.user_id == user_id)
            .order_by(RemotePosition.id)
            .all()
        )

    def insert(self, user_id: str, **fields) -> bool:
        """Insert a position unless the user already holds the symbol remotely."""
        existing = self.get(user_id, fields["symbol"])
        return self._add_if_absent(existing, RemotePosition(user_id=user_id, **fields))

    def upsert(self, user_id: str, **fields) -> RemotePosition:
        """Insert or overwrite the user's row for ``fields['symbol']``."""
        row = self.get(user_id, fields["symbol"])
        if row is None:
            row = RemotePosition(user_id=user_id, **fields)
            self.session.add(row)
        else:
            for key, value in fields.items():
                setattr(row, key, value)
        self.session.flush()
        return row

    def delete(self, user_id: str, symbol: str) -> bool:
        deleted = (
            self.session.query(RemotePosition)
            .filter(
                RemotePosition.user_id == user_id,
                RemotePosition.symbol == symbol.upper(),
            )
            .delete()
        )
        return deleted > 0
