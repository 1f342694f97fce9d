"""Composition root wiring the stores, fetcher, pollers and sync for one session."""

from typing import Any, Dict, List, Optional

from .alerts.evaluator import AlertEvaluator
from .config.logging import bind_session, clear_session, get_logger
from .config.settings import Settings
from .events import EventBus, QuotesRefreshedEvent
from .exceptions import QuoteFetchError
from .notifications.center import NotificationCenter
from .portfolio.storage import JsonFileStorage, KeyValueStorage
from .portfolio.store import AlertStore, PortfolioStore, WatchlistStore
from .quotes.fetcher import QuoteFetcher
from .quotes.market import MarketOverviewService
from .quotes.models import MarketOverview, Quote
from .quotes.news import NewsService
from .quotes.social import SocialFeed
from .recommendations.scorer import Recommendation
from .recommendations.sectors import SymbolMatch, search_symbols
from .recommendations.service import RecommendationService
from .scheduler import PollingScheduler, Subscription
from .sync.adapter import RemoteSyncAdapter
from .sync.backend import RemoteBackend, SqlAlchemyBackend

logger = get_logger(__name__)

DEFAULT_SECTOR = "Technology"


class Dashboard:
    """
    One user session of the dashboard core.

    Every collaborator can be injected; anything left out is built from
    ``settings``. Local stores are rehydrated in the constructor, before any
    network activity.
    """

    def __init__(
        self,
        settings: Settings,
        storage: Optional[KeyValueStorage] = None,
        fetcher: Optional[QuoteFetcher] = None,
        backend: Optional[RemoteBackend] = None,
        event_bus: Optional[EventBus] = None,
        scheduler: Optional[PollingScheduler] = None,
        news_service: Optional[NewsService] = None,
        social_feed: Optional[SocialFeed] = None,
        market_service: Optional[MarketOverviewService] = None,
    ):
        self.settings = settings
        self.logger = logger.bind(component="dashboard")
        self.event_bus = event_bus or EventBus("dashboard")

        storage = storage or JsonFileStorage(settings.get_local_store_path())
        self.portfolio = PortfolioStore(
            storage, settings.max_stock_allocation, settings.max_sector_allocation
        )
        self.watchlist = WatchlistStore(storage)
        self.alerts = AlertStore(storage)

        self.fetcher = fetcher or QuoteFetcher.from_settings(settings)
        self.news_service = news_service or NewsService(
            settings.news_endpoint_url,
            settings.request_timeout_seconds,
            settings.news_item_limit,
        )
        self.social_feed = social_feed or SocialFeed()
        self.market_service = market_service or MarketOverviewService(self.fetcher)
        self.notifications = NotificationCenter(self.event_bus)
        self.evaluator = AlertEvaluator(self.alerts, self.event_bus)

        if backend is None:
            from .ormdb.database import get_database

            backend = SqlAlchemyBackend(get_database(settings))
        self.sync = RemoteSyncAdapter(
            self.portfolio, self.watchlist, self.alerts, backend, self.event_bus
        )

        self.recommendation_service = RecommendationService(
            self.fetcher,
            self.news_service,
            self.social_feed,
            sector_limit=settings.max_sector_allocation,
            stock_limit=settings.max_stock_allocation,
        )
        self.scheduler = scheduler or PollingScheduler()

        self.latest_quotes: Dict[str, Quote] = {}
        self.recommendations: Dict[str, List[Recommendation]] = {}
        self.sentiment: Dict[str, float] = {}
        self.market_overview: Optional[MarketOverview] = None
        self.sector = DEFAULT_SECTOR

        self.logger.info(
            "Dashboard state rehydrated",
            positions=len(self.portfolio),
            watchlist=len(self.watchlist),
            alerts=len(self.alerts),
        )

    def tracked_symbols(self) -> List[str]:
        """Portfolio, watchlist and active alert symbols, de-duplicated in that order."""
        return list(
            dict.fromkeys(
                self.portfolio.symbols + self.watchlist.symbols + self.alerts.symbols
            )
        )

    async def login(self, user_id: str, force: bool = False) -> bool:
        bind_session(user_id)
        return await self.sync.sync_with_remote(user_id, force=force)

    def logout(self) -> None:
        self.sync.sign_out()
        clear_session()

    async def refresh_prices(self) -> Dict[str, Quote]:
        """
        Fetch every tracked symbol and apply the prices to the stores.

        A failed batch keeps the previous prices; the next tick retries.
        """
        symbols = self.tracked_symbols()
        if not symbols:
            return {}

        hits_before = self.fetcher.cache.hits
        try:
            quotes = await self.fetcher.get_quotes(symbols)
        except QuoteFetchError as e:
            self.logger.warning("Price refresh failed", symbols=symbols, error=str(e))
            return {}

        # Applied in one step after the await; overlapping polls are last-write-wins
        self.latest_quotes.update(quotes)
        unavailable = []
        for symbol, quote in quotes.items():
            if quote.is_available:
                self.portfolio.update_price(symbol, quote.price)
            else:
                unavailable.append(symbol)

        fired = await self.evaluator.check_quotes(quotes)
        if fired:
            await self.sync.record_fired(fired)

        await self.event_bus.publish(
            QuotesRefreshedEvent(
                symbols=sorted(quotes),
                unavailable=unavailable,
                from_cache=self.fetcher.cache.hits > hits_before,
            )
        )
        return quotes

    async def check_alerts(self) -> None:
        """Evaluate alerts against fresh quotes for alert symbols only."""
        symbols = self.alerts.symbols
        if not symbols:
            return

        try:
            quotes = await self.fetcher.get_quotes(symbols)
        except QuoteFetchError as e:
            self.logger.warning("Alert check failed", symbols=symbols, error=str(e))
            return

        self.latest_quotes.update(quotes)
        fired = await self.evaluator.check_quotes(quotes)
        if fired:
            await self.sync.record_fired(fired)

    async def refresh_macro(self) -> Optional[MarketOverview]:
        """Refresh index, sector and volume data; a failed batch keeps the last snapshot."""
        try:
            overview = await self.market_service.get_overview()
        except QuoteFetchError as e:
            self.logger.warning("Market overview refresh failed", error=str(e))
            return self.market_overview
        self.market_overview = overview
        return overview

    def search(self, query: str, limit: int = 20) -> List[SymbolMatch]:
        return search_symbols(query, limit)

    async def refresh_recommendations(self, sector: Optional[str] = None) -> List[Recommendation]:
        sector = sector or self.sector
        results = await self.recommendation_service.recommend_sector(sector)
        self.recommendations[sector] = results
        return results

    async def refresh_sentiment(self) -> Dict[str, float]:
        self.sentiment = {
            symbol: self.social_feed.sentiment_score(symbol)
            for symbol in self.tracked_symbols()
        }
        return dict(self.sentiment)

    def start(self, sector: Optional[str] = None) -> List[Subscription]:
        """Start the scheduler and subscribe all pollers; call inside the event loop."""
        self.sector = sector or self.sector
        self.scheduler.start()
        subscriptions = [
            self.scheduler.subscribe(
                "prices", self.refresh_prices, self.settings.price_poll_seconds
            ),
            self.scheduler.subscribe(
                "alerts", self.check_alerts, self.settings.alert_poll_seconds
            ),
            self.scheduler.subscribe(
                "macro", self.refresh_macro, self.settings.macro_poll_seconds
            ),
            self._subscribe_recommendations(),
            self.scheduler.subscribe(
                "sentiment", self.refresh_sentiment, self.settings.sentiment_poll_seconds
            ),
        ]
        self.logger.info("Dashboard pollers started", sector=self.sector)
        return subscriptions

    def _subscribe_recommendations(self) -> Subscription:
        sector = self.sector

        async def poll():
            await self.refresh_recommendations(sector)

        return self.scheduler.subscribe(
            "recommendations",
            poll,
            self.settings.recommendation_poll_seconds,
            key=sector,
        )

    def select_sector(self, sector: str) -> Subscription:
        """Switch the recommendation poller to another sector."""
        self.sector = sector
        return self._subscribe_recommendations()

    async def status(self) -> Dict[str, Any]:
        """Session, backend and event bus state for diagnostics."""
        if self.sync.is_remote:
            backend = await self.sync.backend.check_health()
        else:
            backend = {"status": "local-only"}
        return {
            "user_id": self.sync.user_id,
            "last_synced_user": self.sync.last_synced_user,
            "tracked_symbols": self.tracked_symbols(),
            "backend": backend,
            "events": self.event_bus.get_statistics(),
            "recent_events": self.event_bus.get_event_history(limit=10),
        }

    async def stop(self) -> None:
        self.scheduler.unsubscribe_all()
        self.scheduler.shutdown()
        await self.event_bus.drain()
        self.logger.info("Dashboard stopped", events=self.event_bus.get_statistics())

    @classmethod
    def from_settings(cls, settings: Settings) -> "Dashboard":
        return cls(settings)
