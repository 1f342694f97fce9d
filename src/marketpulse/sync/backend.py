"""Remote persistence backends for sync."""

import asyncio
from typing import Any, Callable, Dict, List, Protocol, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from ..config.logging import get_logger
from ..exceptions import PersistenceError
from ..ormdb.database import Database
from ..ormdb.repositories import (
    PositionRepository,
    PriceAlertRepository,
    WatchlistRepository,
)
from ..portfolio.models import AlertCondition, Position, PriceAlert

logger = get_logger(__name__)

T = TypeVar("T")


class RemoteBackend(Protocol):
    """
    Row-per-item persistence keyed by user id.

    Inserts are idempotent (a duplicate is success). Every method raises
    ``PersistenceError`` on failure.
    """

    async def fetch_positions(self, user_id: str) -> List[Position]:
        ...

    async def insert_position(self, user_id: str, position: Position) -> bool:
        ...

    async def save_position(self, user_id: str, position: Position) -> None:
        ...

    async def delete_position(self, user_id: str, symbol: str) -> bool:
        ...

    async def fetch_watchlist(self, user_id: str) -> List[str]:
        ...

    async def insert_watch(self, user_id: str, symbol: str) -> bool:
        ...

    async def delete_watch(self, user_id: str, symbol: str) -> bool:
        ...

    async def fetch_alerts(self, user_id: str) -> List[PriceAlert]:
        ...

    async def insert_alert(self, user_id: str, alert: PriceAlert) -> bool:
        ...

    async def set_alert_active(self, user_id: str, alert_id: str, active: bool) -> bool:
        ...

    async def delete_alert(self, user_id: str, alert_id: str) -> bool:
        ...

    async def check_health(self) -> Dict[str, Any]:
        ...


def _position_fields(position: Position) -> dict:
    return {
        "symbol": position.symbol,
        "position_id": position.id,
        "name": position.name,
        "units": position.units,
        "avg_cost": position.avg_cost,
        "current_price": position.current_price,
        "sector": position.sector,
    }


class SqlAlchemyBackend:
    """``RemoteBackend`` over the ORM repositories, run in worker threads."""

    def __init__(self, database: Database):
        self.database = database
        self.logger = logger.bind(component="sqlalchemy_backend")

    async def _run(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(self._in_session, func, *args)
        except SQLAlchemyError as e:
            self.logger.error(
                "Backend operation failed", operation=operation, error=str(e)
            )
            raise PersistenceError(operation, str(e)) from e

    def _in_session(self, func: Callable[..., T], *args: Any) -> T:
        with self.database.session() as session:
            return func(session, *args)

    async def check_health(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self.database.check_health)

    # Positions

    async def fetch_positions(self, user_id: str) -> List[Position]:
        def query(session, user_id):
            rows = PositionRepository(session).list_for_user(user_id)
            return [
                Position(
                    id=row.position_id,
                    symbol=row.symbol,
                    units=row.units,
                    avg_cost=row.avg_cost,
                    current_price=row.current_price or 0.0,
                    name=row.name or row.symbol,
                    sector=row.sector or "",
                )
                for row in rows
            ]

        return await self._run("select positions", query, user_id)

    async def insert_position(self, user_id: str, position: Position) -> bool:
        def insert(session, user_id, position):
            return PositionRepository(session).insert(user_id, **_position_fields(position))

        return await self._run("insert position", insert, user_id, position)

    async def save_position(self, user_id: str, position: Position) -> None:
        def upsert(session, user_id, position):
            PositionRepository(session).upsert(user_id, **_position_fields(position))

        await self._run("save position", upsert, user_id, position)

    async def delete_position(self, user_id: str, symbol: str) -> bool:
        def delete(session, user_id, symbol):
            return PositionRepository(session).delete(user_id, symbol)

        return await self._run("delete position", delete, user_id, symbol)

    # Watchlist

    async def fetch_watchlist(self, user_id: str) -> List[str]:
        def query(session, user_id):
            return WatchlistRepository(session).list_symbols(user_id)

        return await self._run("select watchlist", query, user_id)

    async def insert_watch(self, user_id: str, symbol: str) -> bool:
        def insert(session, user_id, symbol):
            return WatchlistRepository(session).insert(user_id, symbol)

        return await self._run("insert watchlist entry", insert, user_id, symbol)

    async def delete_watch(self, user_id: str, symbol: str) -> bool:
        def delete(session, user_id, symbol):
            return WatchlistRepository(session).delete(user_id, symbol)

        return await self._run("delete watchlist entry", delete, user_id, symbol)

    # Alerts

    async def fetch_alerts(self, user_id: str) -> List[PriceAlert]:
        def query(session, user_id):
            rows = PriceAlertRepository(session).list_for_user(user_id)
            return [
                PriceAlert(
                    id=row.alert_id,
                    symbol=row.symbol,
                    target_price=row.target_price,
                    condition=AlertCondition(row.condition),
                    active=row.active,
                    created_at=row.created_at,
                )
                for row in rows
            ]

        return await self._run("select alerts", query, user_id)

    async def insert_alert(self, user_id: str, alert: PriceAlert) -> bool:
        def insert(session, user_id, alert):
            return PriceAlertRepository(session).insert(
                user_id,
                alert_id=alert.id,
                symbol=alert.symbol,
                target_price=alert.target_price,
                condition=alert.condition.value,
                active=alert.active,
                created_at=alert.created_at,
            )

        return await self._run("insert alert", insert, user_id, alert)

    async def set_alert_active(self, user_id: str, alert_id: str, active: bool) -> bool:
        def update(session, user_id, alert_id, active):
            return PriceAlertRepository(session).set_active(user_id, alert_id, active)

        return await self._run("update alert", update, user_id, alert_id, active)

    async def delete_alert(self, user_id: str, alert_id: str) -> bool:
        def delete(session, user_id, alert_id):
            return PriceAlertRepository(session).delete(user_id, alert_id)

        return await self._run("delete alert", delete, user_id, alert_id)
