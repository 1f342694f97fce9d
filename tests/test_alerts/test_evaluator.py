"""Tests for fire-once alert evaluation."""

import asyncio
import sys

import pytest

sys.path.append("src")
from marketpulse.alerts.evaluator import AlertEvaluator, format_price
from marketpulse.events import NotificationCategory, NotificationEvent
from marketpulse.portfolio.models import AlertCondition
from marketpulse.quotes.models import Quote


@pytest.fixture
def evaluator(alert_store, event_bus):
    return AlertEvaluator(alert_store, event_bus)


def notifications(published):
    return [e for e in published if isinstance(e, NotificationEvent)]


class TestFormatPrice:
    def test_thousands_and_cents(self):
        assert format_price(1234.5) == "$1,234.50"
        assert format_price(100) == "$100.00"


class TestAlertEvaluator:
    @pytest.mark.asyncio
    async def test_above_alert_fires_once_over_price_sequence(self, evaluator, alert_store, published):
        alert = alert_store.add("AAPL", 100.0, AlertCondition.ABOVE)

        fired = []
        for price in (95.0, 99.0, 100.0, 101.0):
            fired.extend(await evaluator.check_price("AAPL", price))

        assert [a.id for a in fired] == [alert.id]
        assert alert_store.get(alert.id).active is False
        events = notifications(published)
        assert len(events) == 1
        assert events[0].title == "AAPL Price Alert"
        assert events[0].message == "AAPL hit target of $100.00. Current price: $100.00"
        assert events[0].category is NotificationCategory.ALERT
        assert events[0].symbol == "AAPL"

    @pytest.mark.asyncio
    async def test_below_alert(self, evaluator, alert_store, published):
        alert_store.add("TSLA", 1200.0, AlertCondition.BELOW)

        assert await evaluator.check_price("TSLA", 1250.0) == []
        fired = await evaluator.check_price("TSLA", 1199.5)

        assert len(fired) == 1
        assert notifications(published)[0].message == (
            "TSLA hit target of $1,200.00. Current price: $1,199.50"
        )

    @pytest.mark.asyncio
    async def test_alerts_fire_independently(self, evaluator, alert_store):
        low = alert_store.add("AAPL", 100.0, AlertCondition.ABOVE)
        high = alert_store.add("AAPL", 120.0, AlertCondition.ABOVE)
        other = alert_store.add("MSFT", 1.0, AlertCondition.ABOVE)

        fired = await evaluator.check_price("AAPL", 110.0)

        assert [a.id for a in fired] == [low.id]
        assert alert_store.get(high.id).active
        assert alert_store.get(other.id).active

    @pytest.mark.asyncio
    async def test_unavailable_price_never_fires(self, evaluator, alert_store):
        alert_store.add("AAPL", 100.0, AlertCondition.BELOW)

        assert await evaluator.check_price("AAPL", 0) == []
        assert alert_store.symbols == ["AAPL"]

    @pytest.mark.asyncio
    async def test_concurrent_checks_fire_once(self, evaluator, alert_store, published):
        alert_store.add("AAPL", 100.0, AlertCondition.ABOVE)

        results = await asyncio.gather(
            evaluator.check_price("AAPL", 105.0),
            evaluator.check_price("AAPL", 106.0),
        )

        assert sum(len(r) for r in results) == 1
        assert len(notifications(published)) == 1

    @pytest.mark.asyncio
    async def test_rearmed_alert_fires_again(self, evaluator, alert_store):
        alert = alert_store.add("AAPL", 100.0, AlertCondition.ABOVE)
        await evaluator.check_price("AAPL", 101.0)

        alert_store.toggle(alert.id)

        assert len(await evaluator.check_price("AAPL", 101.0)) == 1

    @pytest.mark.asyncio
    async def test_check_quotes_uses_available_quotes_only(self, evaluator, alert_store, make_quote):
        alert_store.add("AAPL", 100.0, AlertCondition.BELOW)
        alert_store.add("MSFT", 300.0, AlertCondition.ABOVE)

        fired = await evaluator.check_quotes(
            {
                "AAPL": Quote.unavailable("AAPL"),
                "MSFT": make_quote("MSFT", 310.0),
                "NVDA": make_quote("NVDA", 1.0),
            }
        )

        assert [a.symbol for a in fired] == ["MSFT"]
        assert alert_store.symbols == ["AAPL"]
