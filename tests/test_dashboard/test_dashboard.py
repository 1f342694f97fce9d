"""Integration tests for the dashboard composition root."""

import argparse
import json
import sys
from unittest.mock import AsyncMock, Mock, patch

import pytest

sys.path.append("src")
from marketpulse.config.settings import Settings
from marketpulse.dashboard import Dashboard
from marketpulse.events import NotificationEvent, QuotesRefreshedEvent
from marketpulse.exceptions import QuoteFetchError
from marketpulse.main import build_parser, print_summary, run
from marketpulse.portfolio.models import AlertCondition
from marketpulse.quotes.cache import TTLCache
from marketpulse.quotes.models import Quote, Sentiment
from marketpulse.quotes.social import SocialFeed, SocialPost

pytestmark = pytest.mark.integration


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, data_directory=str(tmp_path))


@pytest.fixture
def fetcher():
    fetcher = Mock()
    fetcher.cache = TTLCache()
    fetcher.get_quotes = AsyncMock(return_value={})
    return fetcher


@pytest.fixture
def backend():
    backend = AsyncMock()
    backend.fetch_positions.return_value = []
    backend.fetch_watchlist.return_value = []
    backend.fetch_alerts.return_value = []
    return backend


@pytest.fixture
def news_service():
    service = Mock()
    service.get_news = AsyncMock(return_value=[])
    return service


@pytest.fixture
def dashboard(settings, storage, fetcher, backend, event_bus, news_service):
    return Dashboard(
        settings,
        storage=storage,
        fetcher=fetcher,
        backend=backend,
        event_bus=event_bus,
        scheduler=Mock(),
        news_service=news_service,
        social_feed=SocialFeed(),
    )


class TestRefreshPrices:
    @pytest.mark.asyncio
    async def test_applies_prices_and_fires_alerts(
        self, dashboard, fetcher, make_quote, published
    ):
        position = dashboard.portfolio.add("AAPL", 10, 100.0)
        dashboard.watchlist.add("MSFT")
        dashboard.alerts.add("AAPL", 105.0, AlertCondition.ABOVE)
        fetcher.get_quotes.return_value = {
            "AAPL": make_quote("AAPL", 110.0),
            "MSFT": Quote.unavailable("MSFT"),
        }

        quotes = await dashboard.refresh_prices()

        fetcher.get_quotes.assert_awaited_once_with(["AAPL", "MSFT"])
        assert set(quotes) == {"AAPL", "MSFT"}
        assert dashboard.portfolio.get(position.id).market_value == 1100.0
        assert dashboard.alerts.symbols == []
        assert dashboard.notifications.unread_count == 1
        assert dashboard.notifications.notifications[0].title == "AAPL Price Alert"

        refreshed = [e for e in published if isinstance(e, QuotesRefreshedEvent)]
        assert refreshed[0].symbols == ["AAPL", "MSFT"]
        assert refreshed[0].unavailable == ["MSFT"]
        assert refreshed[0].from_cache is False

    @pytest.mark.asyncio
    async def test_failed_batch_keeps_previous_prices(self, dashboard, fetcher, published):
        position = dashboard.portfolio.add("AAPL", 10, 100.0, current_price=105.0)
        fetcher.get_quotes.side_effect = QuoteFetchError(["AAPL"], "down")

        assert await dashboard.refresh_prices() == {}

        assert dashboard.portfolio.get(position.id).current_price == 105.0
        assert published == []

    @pytest.mark.asyncio
    async def test_nothing_tracked_makes_no_request(self, dashboard, fetcher):
        assert await dashboard.refresh_prices() == {}
        fetcher.get_quotes.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fired_alert_recorded_remotely(self, dashboard, fetcher, backend, make_quote):
        await dashboard.login("user-1")
        alert = dashboard.alerts.add("AAPL", 100.0, AlertCondition.BELOW)
        fetcher.get_quotes.return_value = {"AAPL": make_quote("AAPL", 95.0)}

        await dashboard.check_alerts()

        backend.set_alert_active.assert_awaited_once_with("user-1", alert.id, False)
        assert dashboard.latest_quotes["AAPL"].price == 95.0


class TestSession:
    @pytest.mark.asyncio
    async def test_bypass_login_is_local_only(self, dashboard, backend):
        assert await dashboard.login("bypass-guest") is False
        await dashboard.sync.add_watch("NVDA")

        assert backend.mock_calls == []
        assert dashboard.tracked_symbols() == ["NVDA"]

    @pytest.mark.asyncio
    async def test_logout_clears_user(self, dashboard):
        await dashboard.login("user-1")
        dashboard.logout()

        assert dashboard.sync.user_id is None

    @pytest.mark.asyncio
    async def test_sentiment_for_tracked_symbols(self, dashboard):
        dashboard.watchlist.add("AAPL")
        dashboard.social_feed.add_post(
            SocialPost(
                id="1",
                author="Fund",
                handle="@fund",
                content="Adding AAPL",
                sentiment=Sentiment.POSITIVE,
                weight=8,
                symbol="AAPL",
            )
        )

        assert await dashboard.refresh_sentiment() == {"AAPL": 100.0}

    @pytest.mark.asyncio
    async def test_recommendations_cached_per_sector(self, dashboard, fetcher, make_quote):
        fetcher.get_quotes.return_value = {"XOM": make_quote("XOM", 110.0)}
        dashboard.recommendation_service.history_loader = lambda symbol: []

        results = await dashboard.refresh_recommendations("Energy")

        assert [r.symbol for r in results] == ["XOM"]
        assert dashboard.recommendations["Energy"] == results


class TestMarketOverview:
    @pytest.mark.asyncio
    async def test_refresh_macro(self, dashboard, fetcher, make_quote):
        fetcher.get_quotes.return_value = {
            "^GSPC": make_quote("^GSPC", 5000.0, name="^GSPC"),
            "XLK": make_quote("XLK", 200.0, change_percent=1.5),
            "XLE": make_quote("XLE", 90.0, change_percent=-0.5),
        }

        overview = await dashboard.refresh_macro()

        assert overview.index.name == "S&P 500"
        assert [s.symbol for s in overview.sectors[:2]] == ["XLK", "XLE"]
        assert dashboard.market_overview is overview

    @pytest.mark.asyncio
    async def test_failed_macro_refresh_keeps_snapshot(self, dashboard, fetcher, make_quote):
        fetcher.get_quotes.return_value = {"^GSPC": make_quote("^GSPC", 5000.0)}
        previous = await dashboard.refresh_macro()
        fetcher.get_quotes.side_effect = QuoteFetchError(["^GSPC"], "down")

        assert await dashboard.refresh_macro() is previous
        assert dashboard.market_overview is previous

    def test_search(self, dashboard):
        assert [m.symbol for m in dashboard.search("nvid")] == ["NVDA"]


class TestStatus:
    @pytest.mark.asyncio
    async def test_local_session_skips_backend(self, dashboard, backend):
        dashboard.watchlist.add("MSFT")

        status = await dashboard.status()

        assert status["backend"] == {"status": "local-only"}
        assert status["tracked_symbols"] == ["MSFT"]
        backend.check_health.assert_not_awaited()


class TestPolling:
    def test_start_subscribes_all_pollers(self, dashboard, settings):
        dashboard.start("Energy")

        scheduler = dashboard.scheduler
        scheduler.start.assert_called_once()
        names = [c.args[0] for c in scheduler.subscribe.call_args_list]
        assert names == ["prices", "alerts", "macro", "recommendations", "sentiment"]
        prices_call = scheduler.subscribe.call_args_list[0]
        assert prices_call.args[2] == settings.price_poll_seconds
        macro_call = scheduler.subscribe.call_args_list[2]
        assert macro_call.args[2] == settings.macro_poll_seconds == 30
        recommendations_call = scheduler.subscribe.call_args_list[3]
        assert recommendations_call.kwargs["key"] == "Energy"

    def test_select_sector_resubscribes_with_new_key(self, dashboard):
        dashboard.start()

        dashboard.select_sector("Healthcare")

        assert dashboard.sector == "Healthcare"
        assert dashboard.scheduler.subscribe.call_args.kwargs["key"] == "Healthcare"

    @pytest.mark.asyncio
    async def test_stop(self, dashboard):
        await dashboard.stop()

        dashboard.scheduler.unsubscribe_all.assert_called_once()
        dashboard.scheduler.shutdown.assert_called_once()


class TestRehydration:
    def test_state_survives_restart(self, settings, fetcher, backend, news_service):
        first = Dashboard(settings, fetcher=fetcher, backend=backend, scheduler=Mock(), news_service=news_service)
        first.portfolio.add("AAPL", 10, 100.0)
        first.watchlist.add("MSFT")
        first.alerts.add("TSLA", 200.0, AlertCondition.BELOW)

        second = Dashboard(settings, fetcher=fetcher, backend=backend, scheduler=Mock(), news_service=news_service)

        assert second.tracked_symbols() == ["AAPL", "MSFT", "TSLA"]


class TestMain:
    def test_parser(self):
        args = build_parser().parse_args(["--user", "user-1", "--once"])

        assert args.user == "user-1"
        assert args.once is True
        assert args.sector is None

    def test_print_summary(self, dashboard, capsys):
        dashboard.portfolio.add("AAPL", 1, 100.0, current_price=150.0)

        print_summary(dashboard)

        output = capsys.readouterr().out
        assert "Positions: 1" in output
        assert "AAPL" in output
        assert "Allocation warning: stock AAPL" in output

    @pytest.mark.asyncio
    async def test_run_once(self, dashboard, fetcher, make_quote, capsys):
        dashboard.portfolio.add("AAPL", 1, 100.0)
        fetcher.get_quotes.return_value = {"AAPL": make_quote("AAPL", 120.0)}
        args = argparse.Namespace(user=None, sector=None, once=True, status=False)

        with patch("marketpulse.main.Dashboard.from_settings", return_value=dashboard):
            await run(args)

        assert "+20.00 (+20.00%)" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_run_status_prints_json(self, dashboard, backend, capsys):
        backend.check_health.return_value = {"status": "healthy", "connectivity": True}
        args = argparse.Namespace(user="user-1", sector=None, once=False, status=True)

        with patch("marketpulse.main.Dashboard.from_settings", return_value=dashboard):
            await run(args)

        status = json.loads(capsys.readouterr().out)
        assert status["user_id"] == "user-1"
        assert status["backend"]["status"] == "healthy"
        assert status["events"]["events_published"] >= 1
        assert status["recent_events"][-1]["event_type"] == "SyncCompletedEvent"
