"""Market data: quotes, news and social sentiment."""

from .cache import TTLCache, request_signature
from .fetcher import QuoteFetcher
from .market import MarketOverviewService
from .models import (
    MarketOverview,
    NewsArticle,
    ProviderPayload,
    Quote,
    QuoteProvider,
    SectorPerformance,
    Sentiment,
    VolumeAnomaly,
)
from .news import NewsService, generate_fallback_news
from .social import SocialFeed, SocialPost

__all__ = [
    "MarketOverview",
    "MarketOverviewService",
    "NewsArticle",
    "NewsService",
    "ProviderPayload",
    "Quote",
    "QuoteFetcher",
    "QuoteProvider",
    "SectorPerformance",
    "Sentiment",
    "SocialFeed",
    "SocialPost",
    "TTLCache",
    "VolumeAnomaly",
    "generate_fallback_news",
    "request_signature",
]
