"""Repository for remote price alert rows."""

from typing import List, Optional

from ..models import RemotePriceAlert
from .base import BaseRepository


class PriceAlertRepository(BaseRepository):
    """Repository for price alert operations."""

    def get(self, user_id: str, alert_id: str) -> Optional[RemotePriceAlert]:
        return (
            self.session.query(RemotePriceAlert)
            .filter(
                RemotePriceAlert.user_id == user_id,
                RemotePriceAlert.alert_id == alert_id,
            )
            .first()
        )

    def list_for_user(self, user_id: str) -> List[RemotePriceAlert]:
        return (
            self.session.query(RemotePriceAlert)
            .filter(RemotePriceAlert.user_id == user_id)
            .order_by(RemotePriceAlert.created_at, RemotePriceAlert.id)
            .all()
        )

    def insert(self, user_id: str, **fields) -> bool:
        existing = self.get(user_id, fields["alert_id"])
        return self._add_if_absent(existing, RemotePriceAlert(user_id=user_id, **fields))

    def set_active(self, user_id: str, alert_id: str, active: bool) -> bool:
        row = self.get(user_id, alert_id)
        if row is None:
            return False
        row.active = active
        self.session.flush()
        return True

    def delete(self, user_id: str, alert_id: str) -> bool:
        deleted = (
            self.session.query(RemotePriceAlert)
            .filter(
                RemotePriceAlert.user_id == user_id,
                RemotePriceAlert.alert_id == alert_id,
            )
            .delete()
        )
        return deleted > 0
