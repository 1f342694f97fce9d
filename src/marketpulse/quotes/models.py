"""Data models for quotes, provider payloads and news."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

UNAVAILABLE_SUFFIX = "(Unavailable)"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Quote(BaseModel):
    """Point-in-time snapshot of a traded symbol.

    A price of exactly 0 means the data is unavailable.
    """

    symbol: str
    name: str
    price: float = Field(default=0.0, ge=0)
    change: float = 0.0
    change_percent: float = 0.0
    previous_close: float = 0.0
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    volume: int = 0
    avg_volume: int = 0
    market_cap: float = 0.0
    pe_ratio: Optional[float] = None
    eps: Optional[float] = None
    dividend_yield: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None
    provider: Optional[str] = None
    last_updated: datetime = Field(default_factory=_utcnow)

    @property
    def is_available(self) -> bool:
        return self.price > 0

    @classmethod
    def unavailable(cls, symbol: str) -> "Quote":
        """Placeholder for a symbol the upstream did not return."""
        return cls(symbol=symbol, name=f"{symbol} {UNAVAILABLE_SUFFIX}", price=0.0)


class QuoteProvider(Enum):
    """Upstream providers that can serve quote requests."""

    YAHOO = "yahoo"
    PROXY = "proxy"
    FINNHUB = "finnhub"
    ALPHA_VANTAGE = "alphavantage"
    TWELVE_DATA = "twelvedata"
    FMP = "fmp"
    STOOQ = "stooq"


@dataclass(frozen=True)
class ProviderPayload:
    """Raw upstream body tagged with the provider that produced it."""

    provider: QuoteProvider
    body: Any


class Sentiment(Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class NewsArticle(BaseModel):
    """A single news item for a symbol."""

    id: str
    headline: str
    summary: str = ""
    source: str = ""
    url: str = "#"
    published_at: int = 0  # unix seconds
    image: Optional[str] = None
    sentiment: Sentiment = Sentiment.NEUTRAL


class SectorPerformance(BaseModel):
    """Day change of one sector, measured by its sector ETF."""

    name: str
    symbol: str
    change_percent: Optional[float] = None  # None when the ETF quote is unavailable


class VolumeAnomaly(BaseModel):
    symbol: str
    volume_ratio: float
    change_percent: float
    reason: str


class MarketOverview(BaseModel):
    """Macro snapshot: headline index, sector moves and unusual volume."""

    index: Quote
    sectors: List[SectorPerformance] = Field(default_factory=list)
    volume_anomalies: List[VolumeAnomaly] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=_utcnow)
