"""Fire-once price alert evaluation."""

from typing import Dict, List

from ..config.logging import get_logger
from ..events import EventBus, NotificationCategory, NotificationEvent
from ..portfolio.models import PriceAlert
from ..portfolio.store import AlertStore
from ..quotes.models import Quote

logger = get_logger(__name__)


def format_price(value: float) -> str:
    return f"${value:,.2f}"


class AlertEvaluator:
    """Checks latest prices against active alerts and publishes notifications."""

    def __init__(self, alerts: AlertStore, event_bus: EventBus):
        self.alerts = alerts
        self.event_bus = event_bus
        self.logger = logger.bind(component="alert_evaluator")

    async def check_price(self, symbol: str, price: float) -> List[PriceAlert]:
        """
        Evaluate every active alert for ``symbol`` at ``price``.

        Each satisfied alert is deactivated before anything is awaited, so a
        concurrent or repeated call cannot fire it a second time.

        Returns:
            Alerts that fired on this call
        """
        if price is None or price <= 0:
            return []

        fired = []
        for alert in self.alerts.active_for(symbol):
            if alert.is_triggered_by(price) and self.alerts.deactivate(alert.id):
                fired.append(alert)

        for alert in fired:
            self.logger.info(
                "Price alert fired",
                symbol=alert.symbol,
                condition=alert.condition.value,
                target=alert.target_price,
                price=price,
            )
            await self.event_bus.publish(
                NotificationEvent(
                    title=f"{alert.symbol} Price Alert",
                    message=(
                        f"{alert.symbol} hit target of {format_price(alert.target_price)}. "
                        f"Current price: {format_price(price)}"
                    ),
                    category=NotificationCategory.ALERT,
                    symbol=alert.symbol,
                )
            )

        return fired

    async def check_quotes(self, quotes: Dict[str, Quote]) -> List[PriceAlert]:
        """Run ``check_price`` for every available quote that has active alerts."""
        fired = []
        for symbol in self.alerts.symbols:
            quote = quotes.get(symbol)
            if quote is not None and quote.is_available:
                fired.extend(await self.check_price(symbol, quote.price))
        return fired
