"""Sector recommendations built from quotes, news, social sentiment and history."""

import asyncio
from typing import Callable, List, Optional, Sequence

from ..config.logging import get_logger
from ..exceptions import QuoteFetchError
from ..portfolio.calculations import SECTOR_ALLOCATION_LIMIT, STOCK_ALLOCATION_LIMIT
from ..quotes.fetcher import QuoteFetcher
from ..quotes.models import Quote
from ..quotes.news import NewsService
from ..quotes.social import SocialFeed
from .indicators import load_daily_closes, technicals_from_closes
from .scorer import Fundamentals, Recommendation, score
from .sectors import symbols_for_sector

logger = get_logger(__name__)

MAX_CANDIDATES = 10
NEWS_PER_SYMBOL = 3


def assign_allocations(
    recommendations: Sequence[Recommendation],
    sector_limit: float = SECTOR_ALLOCATION_LIMIT,
    stock_limit: float = STOCK_ALLOCATION_LIMIT,
) -> None:
    """Split the sector budget by score share, capped per stock, rounded to 2 places."""
    total_score = sum(r.score for r in recommendations)
    for rec in recommendations:
        if total_score <= 0:
            rec.suggested_allocation = 0.0
            continue
        allocation = min(sector_limit * rec.score / total_score, stock_limit)
        rec.suggested_allocation = round(allocation, 2)


class RecommendationService:
    """Scores candidate symbols and ranks them per sector."""

    def __init__(
        self,
        fetcher: QuoteFetcher,
        news_service: NewsService,
        social_feed: SocialFeed,
        history_loader: Callable[[str], List[float]] = load_daily_closes,
        sector_limit: float = SECTOR_ALLOCATION_LIMIT,
        stock_limit: float = STOCK_ALLOCATION_LIMIT,
    ):
        self.fetcher = fetcher
        self.news_service = news_service
        self.social_feed = social_feed
        self.history_loader = history_loader
        self.sector_limit = sector_limit
        self.stock_limit = stock_limit
        self.logger = logger.bind(component="recommendations")

    async def _closes(self, symbol: str) -> List[float]:
        try:
            return await asyncio.to_thread(self.history_loader, symbol)
        except Exception as e:
            self.logger.warning("Price history unavailable", symbol=symbol, error=str(e))
            return []

    async def recommend_quote(self, quote: Quote, sector: str = "") -> Recommendation:
        """Score one available quote with its news, history and social sentiment."""
        news = await self.news_service.get_news(quote.symbol, NEWS_PER_SYMBOL)
        closes = await self._closes(quote.symbol)

        recommendation = score(
            quote,
            technicals_from_closes(closes),
            Fundamentals(pe_ratio=quote.pe_ratio, eps=quote.eps),
            news,
            self.social_feed.sentiment_score(quote.symbol),
        )
        recommendation.sector = sector
        return recommendation

    async def recommend_sector(
        self, sector: str, symbols: Optional[Sequence[str]] = None, top_n: int = 3
    ) -> List[Recommendation]:
        """
        Rank up to ten candidates of a sector and keep the top ``top_n``.

        Symbols whose quote is unavailable are skipped.
        """
        candidates = list(symbols) if symbols is not None else symbols_for_sector(sector)
        candidates = candidates[:MAX_CANDIDATES]
        if not candidates:
            return []

        try:
            quotes = await self.fetcher.get_quotes(candidates)
        except QuoteFetchError as e:
            self.logger.warning("Quotes unavailable for sector", sector=sector, error=str(e))
            return []

        recommendations = []
        for symbol in candidates:
            quote = quotes.get(symbol.upper())
            if quote is None or not quote.is_available:
                self.logger.debug("Skipping unavailable symbol", symbol=symbol)
                continue
            recommendations.append(await self.recommend_quote(quote, sector))

        recommendations.sort(key=lambda r: r.score, reverse=True)
        top = recommendations[:top_n]
        assign_allocations(top, self.sector_limit, self.stock_limit)

        self.logger.info(
            "Sector recommendations ready",
            sector=sector,
            candidates=len(candidates),
            scored=len(recommendations),
            top=[r.symbol for r in top],
        )
        return top
