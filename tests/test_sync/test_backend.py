"""Tests for the SQLAlchemy remote backend."""

import sys
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

sys.path.append("src")
from marketpulse.exceptions import PersistenceError
from marketpulse.portfolio.models import AlertCondition, Position, PriceAlert
from marketpulse.sync.backend import SqlAlchemyBackend


@pytest.fixture
def backend(isolated_db):
    return SqlAlchemyBackend(isolated_db)


def make_position(symbol="AAPL", position_id=None, units=10.0, price=0.0):
    return Position(
        id=position_id or f"{symbol}-local",
        symbol=symbol,
        units=units,
        avg_cost=100.0,
        current_price=price,
        name=f"{symbol} Inc.",
        sector="Technology",
    )


class TestPositions:
    @pytest.mark.asyncio
    async def test_insert_and_fetch(self, backend):
        assert await backend.insert_position("user-1", make_position()) is True

        positions = await backend.fetch_positions("user-1")

        assert len(positions) == 1
        assert positions[0].id == "AAPL-local"
        assert positions[0].sector == "Technology"
        assert await backend.fetch_positions("user-2") == []

    @pytest.mark.asyncio
    async def test_duplicate_insert_is_success_without_new_row(self, backend):
        await backend.insert_position("user-1", make_position())

        assert await backend.insert_position("user-1", make_position(position_id="other")) is False
        assert len(await backend.fetch_positions("user-1")) == 1

    @pytest.mark.asyncio
    async def test_save_overwrites_symbol_row(self, backend):
        await backend.insert_position("user-1", make_position())

        await backend.save_position("user-1", make_position(units=25.0, price=120.0))

        positions = await backend.fetch_positions("user-1")
        assert positions[0].units == 25.0
        assert positions[0].current_price == 120.0

    @pytest.mark.asyncio
    async def test_delete(self, backend):
        await backend.insert_position("user-1", make_position())

        assert await backend.delete_position("user-1", "aapl") is True
        assert await backend.delete_position("user-1", "AAPL") is False


class TestWatchlistAndAlerts:
    @pytest.mark.asyncio
    async def test_watchlist(self, backend):
        assert await backend.insert_watch("user-1", "msft") is True
        assert await backend.insert_watch("user-1", "MSFT") is False
        await backend.insert_watch("user-1", "NVDA")

        assert await backend.fetch_watchlist("user-1") == ["MSFT", "NVDA"]
        assert await backend.delete_watch("user-1", "MSFT") is True
        assert await backend.fetch_watchlist("user-1") == ["NVDA"]

    @pytest.mark.asyncio
    async def test_alerts(self, backend):
        alert = PriceAlert(
            id="TSLA-1", symbol="TSLA", target_price=250.0, condition=AlertCondition.BELOW, created_at=1
        )

        assert await backend.insert_alert("user-1", alert) is True
        assert await backend.insert_alert("user-1", alert) is False
        assert await backend.set_alert_active("user-1", "TSLA-1", False) is True
        assert await backend.set_alert_active("user-1", "missing", False) is False

        alerts = await backend.fetch_alerts("user-1")
        assert alerts == [
            PriceAlert(
                id="TSLA-1",
                symbol="TSLA",
                target_price=250.0,
                condition=AlertCondition.BELOW,
                active=False,
                created_at=1,
            )
        ]
        assert await backend.delete_alert("user-1", "TSLA-1") is True


class TestFailures:
    @pytest.mark.asyncio
    async def test_database_errors_become_persistence_errors(self, backend):
        with patch(
            "marketpulse.sync.backend.WatchlistRepository.list_symbols",
            side_effect=OperationalError("SELECT", {}, Exception("locked")),
        ):
            with pytest.raises(PersistenceError) as exc_info:
                await backend.fetch_watchlist("user-1")

        assert exc_info.value.operation == "select watchlist"


class TestDatabase:
    def test_health_check(self, isolated_db):
        health = isolated_db.check_health()

        assert health["status"] == "healthy"
        assert health["connectivity"] is True

    @pytest.mark.asyncio
    async def test_backend_health_check(self, isolated_db):
        health = await SqlAlchemyBackend(isolated_db).check_health()

        assert health["status"] == "healthy"
