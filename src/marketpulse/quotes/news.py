"""News retrieval with a deterministic degraded-mode generator."""

import time
from typing import Any, List, Optional

import aiohttp

from ..config.logging import get_logger
from .models import NewsArticle, Sentiment

logger = get_logger(__name__)

_NEWS_TEMPLATES = [
    ("{symbol} Reports Strong Quarterly Earnings Beat", Sentiment.POSITIVE),
    ("Analysts Raise {symbol} Price Target on Growth Prospects", Sentiment.POSITIVE),
    ("{symbol} Announces Strategic Partnership and Product Launch", Sentiment.POSITIVE),
    ("Market Outlook: {symbol} Shows Promising Long-term Growth", Sentiment.POSITIVE),
    ("{symbol} Expands Into Emerging Markets with New Initiative", Sentiment.POSITIVE),
    ("{symbol} CEO Discusses Future Strategy in Investor Call", Sentiment.NEUTRAL),
    ("Financial Review: {symbol} Maintains Steady Performance", Sentiment.NEUTRAL),
    ("{symbol} Announces Dividend and Share Buyback Program", Sentiment.POSITIVE),
    ("Industry Trends: How {symbol} is Positioning for Success", Sentiment.NEUTRAL),
    ("{symbol} Invests in Technology and Innovation", Sentiment.POSITIVE),
]

_NEWS_SOURCES = ["Reuters", "Bloomberg", "CNBC", "MarketWatch", "Financial Times", "WSJ"]

_SECONDS_PER_DAY = 86400


def generate_fallback_news(
    symbol: str, now: Optional[float] = None, limit: int = 8
) -> List[NewsArticle]:
    """
    Build placeholder news for a symbol when the news endpoint is unusable.

    Output depends only on the symbol and ``now``: one item per day going
    back, sources rotated by a seed derived from the symbol.
    """
    now = time.time() if now is None else now
    seed = sum(ord(char) for char in symbol)

    articles = []
    for index, (template, sentiment) in enumerate(_NEWS_TEMPLATES[: min(limit, 8)]):
        headline = template.format(symbol=symbol)
        articles.append(
            NewsArticle(
                id=f"fallback-{symbol}-{index}",
                headline=headline,
                summary=(
                    f"{headline}. Industry analysts and market observers are "
                    f"monitoring {symbol}'s performance and strategic initiatives "
                    f"as the company continues to navigate market conditions."
                ),
                source=_NEWS_SOURCES[(seed + index) % len(_NEWS_SOURCES)],
                url="#",
                published_at=int(now - index * _SECONDS_PER_DAY),
                sentiment=sentiment,
            )
        )
    return articles


def parse_news_payload(body: Any, symbol: str) -> List[NewsArticle]:
    """
    Parse a news response into articles.

    Accepts a bare list of items or an object wrapping them under ``items``
    or ``news``. Items without a headline are dropped.

    Raises:
        ValueError: If the payload is not one of those shapes
    """
    if isinstance(body, dict):
        items = body.get("items", body.get("news"))
        if isinstance(items, dict):
            items = items.get("result")
    else:
        items = body
    if not isinstance(items, list):
        raise ValueError("news payload does not contain a list of items")

    articles = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        headline = item.get("headline") or item.get("title")
        if not headline:
            continue
        try:
            sentiment = Sentiment(item.get("sentiment", "neutral"))
        except ValueError:
            sentiment = Sentiment.NEUTRAL
        articles.append(
            NewsArticle(
                id=str(item.get("id") or item.get("uuid") or f"{symbol}-{index}"),
                headline=headline,
                summary=item.get("summary") or "",
                source=item.get("source") or item.get("publisher") or "",
                url=item.get("url") or item.get("link") or "#",
                published_at=int(
                    item.get("datetime") or item.get("providerPublishTime") or 0
                ),
                image=item.get("image"),
                sentiment=sentiment,
            )
        )
    return articles


class NewsService:
    """Fetches symbol news from the news endpoint."""

    def __init__(self, endpoint_url: str, timeout_seconds: float = 10.0, default_limit: int = 5):
        self.endpoint_url = endpoint_url
        self.default_limit = default_limit
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.logger = logger.bind(service="news_service")

    async def get_news(self, symbol: str, limit: Optional[int] = None) -> List[NewsArticle]:
        """
        Get news for a symbol.

        Network errors, non-2xx answers, malformed bodies and empty results
        all switch to the deterministic fallback generator.
        """
        limit = limit or self.default_limit
        symbol = symbol.strip().upper()
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(
                    self.endpoint_url, params={"symbols": symbol, "limit": str(limit)}
                ) as response:
                    if response.status != 200:
                        raise ValueError(f"news endpoint returned HTTP {response.status}")
                    body = await response.json(content_type=None)
            articles = parse_news_payload(body, symbol)
        except Exception as e:
            self.logger.warning(
                "News fetch failed, using fallback news", symbol=symbol, error=str(e)
            )
            return generate_fallback_news(symbol, limit=limit)[:limit]

        if not articles:
            self.logger.info("News endpoint returned no items", symbol=symbol)
            return generate_fallback_news(symbol, limit=limit)[:limit]

        return articles[:limit]
