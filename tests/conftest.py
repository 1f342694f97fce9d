"""Shared test configuration and fixtures."""

import os
import sys
import tempfile
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, Mock, patch

import pytest

sys.path.append("src")
from marketpulse.events import EventBus
from marketpulse.ormdb.database import Database
from marketpulse.portfolio import AlertStore, MemoryStorage, PortfolioStore, WatchlistStore
from marketpulse.quotes.models import Quote


class MockResponseContext:
    """Async context manager returned by a mocked ``session.get``."""

    def __init__(self, response):
        self.response = response

    async def __aenter__(self):
        return self.response

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


class MockSessionContext:
    """Async context manager returned by a mocked ``aiohttp.ClientSession``."""

    def __init__(self, session):
        self.session = session

    async def __aenter__(self):
        return self.session

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


def make_response(status: int = 200, json_body: Any = None, text_body: str = ""):
    """Create a mock aiohttp response."""
    response = AsyncMock()
    response.status = status
    response.json = AsyncMock(return_value=json_body)
    response.text = AsyncMock(return_value=text_body)
    return response


@pytest.fixture
def mock_aiohttp():
    """
    Patch aiohttp.ClientSession as seen by the quote and news modules.

    Tests set ``route`` to a callable ``(url, params) -> response`` or
    raise from it to simulate network errors.
    """
    state: Dict[str, Any] = {
        "route": lambda url, params: make_response(json_body={}),
        "calls": [],
    }

    def fake_get(url, params=None, headers=None):
        state["calls"].append((url, dict(params or {})))
        return MockResponseContext(state["route"](url, params or {}))

    session = Mock()
    session.get = Mock(side_effect=fake_get)

    # Both modules import the same aiohttp module, so one patch covers them
    with patch("marketpulse.quotes.fetcher.aiohttp.ClientSession") as client_session:
        client_session.return_value = MockSessionContext(session)
        state["session"] = session
        state["client_session"] = client_session
        yield state


@pytest.fixture
def yahoo_payload() -> Callable[..., Dict[str, Any]]:
    """Build a Yahoo quoteResponse body for (symbol, price) pairs."""

    def build(*quotes):
        return {
            "quoteResponse": {
                "result": [
                    {
                        "symbol": symbol,
                        "longName": f"{symbol} Inc.",
                        "regularMarketPrice": price,
                        "regularMarketChange": 2.0,
                        "regularMarketChangePercent": 2.0 / (price - 2.0) * 100,
                        "regularMarketPreviousClose": price - 2.0,
                        "regularMarketVolume": 1000,
                        "trailingPE": 20.0,
                    }
                    for symbol, price in quotes
                ]
            }
        }

    return build


@pytest.fixture
def make_quote() -> Callable[..., Quote]:
    """Factory for Quote objects with sensible defaults."""

    def build(symbol: str = "AAPL", price: float = 100.0, **fields) -> Quote:
        return Quote(symbol=symbol, name=fields.pop("name", f"{symbol} Inc."), price=price, **fields)

    return build


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def event_bus():
    return EventBus("test")


@pytest.fixture
def portfolio_store(storage):
    return PortfolioStore(storage)


@pytest.fixture
def watchlist_store(storage):
    return WatchlistStore(storage)


@pytest.fixture
def alert_store(storage):
    return AlertStore(storage)


@pytest.fixture
def isolated_db():
    """Create an isolated database for testing."""
    temp_fd, temp_path = tempfile.mkstemp(suffix=".db")
    database = Database(f"sqlite:///{temp_path}")
    database.create_tables()

    try:
        yield database
    finally:
        database.dispose()
        os.close(temp_fd)
        os.unlink(temp_path)


@pytest.fixture
def published(event_bus) -> List[Any]:
    """Collect every event published of the types tests subscribe to."""
    from marketpulse.events import NotificationEvent, QuotesRefreshedEvent, SyncCompletedEvent

    events: List[Any] = []
    for event_type in (NotificationEvent, QuotesRefreshedEvent, SyncCompletedEvent):
        event_bus.subscribe(event_type, events.append)
    return events


@pytest.fixture(autouse=True)
def clean_lru_cache():
    """Clear the settings cache between tests to avoid state pollution."""
    from marketpulse.config.settings import get_settings

    yield
    get_settings.cache_clear()
