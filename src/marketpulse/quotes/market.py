"""Macro market data: sector ETF performance, the headline index and volume spikes."""

from typing import Dict, Iterable, List, Optional, Tuple

from ..config.logging import get_logger
from .fetcher import QuoteFetcher
from .models import MarketOverview, Quote, SectorPerformance, VolumeAnomaly

logger = get_logger(__name__)

SECTOR_ETFS: Dict[str, str] = {
    "Technology": "XLK",
    "Financials": "XLF",
    "Healthcare": "XLV",
    "Energy": "XLE",
    "Cons. Discret.": "XLY",
    "Cons. Staples": "XLP",
    "Industrials": "XLI",
    "Utilities": "XLU",
    "Real Estate": "XLRE",
    "Materials": "XLB",
}

INDEX_SYMBOL = "^GSPC"
INDEX_NAME = "S&P 500"

VOLUME_WATCH_SYMBOLS: Tuple[str, ...] = (
    "AAPL", "TSLA", "NVDA", "AMD", "PLTR", "SOFI",
    "MARA", "NIO", "META", "MSFT", "GOOGL", "AMZN",
)

VOLUME_SPIKE_RATIO = 1.5
MAX_ANOMALIES = 4


def rank_sector_performance(quotes: Dict[str, Quote]) -> List[SectorPerformance]:
    """Sectors sorted by change descending; sectors without a quote sort last."""
    sectors = []
    for name, symbol in SECTOR_ETFS.items():
        quote = quotes.get(symbol)
        change = quote.change_percent if quote is not None and quote.is_available else None
        sectors.append(SectorPerformance(name=name, symbol=symbol, change_percent=change))

    return sorted(
        sectors,
        key=lambda s: (s.change_percent is None, -(s.change_percent or 0.0)),
    )


def find_volume_anomalies(
    quotes: Dict[str, Quote], symbols: Iterable[str], limit: int = MAX_ANOMALIES
) -> List[VolumeAnomaly]:
    anomalies = []
    for symbol in symbols:
        quote = quotes.get(symbol)
        if quote is None or not quote.is_available or quote.avg_volume <= 0:
            continue
        ratio = quote.volume / quote.avg_volume
        if ratio <= VOLUME_SPIKE_RATIO:
            continue
        anomalies.append(
            VolumeAnomaly(
                symbol=symbol,
                volume_ratio=round(ratio, 1),
                change_percent=quote.change_percent,
                reason="Bullish Momentum" if quote.change_percent > 0 else "Bearish Pressure",
            )
        )

    anomalies.sort(key=lambda a: a.volume_ratio, reverse=True)
    return anomalies[:limit]


def _named_index(quote: Quote) -> Quote:
    # Providers without a display name echo the ticker
    if quote.is_available and quote.name == quote.symbol:
        return quote.model_copy(update={"name": INDEX_NAME})
    return quote


class MarketOverviewService:
    """
    Builds the macro snapshot from one quote batch.

    Every call goes through the shared ``QuoteFetcher``, so it shares the
    quote cache and raises ``QuoteFetchError`` when no provider answers.
    """

    def __init__(
        self,
        fetcher: QuoteFetcher,
        volume_symbols: Optional[Iterable[str]] = None,
    ):
        self.fetcher = fetcher
        self.volume_symbols = list(volume_symbols or VOLUME_WATCH_SYMBOLS)
        self.logger = logger.bind(component="market_overview")

    async def get_sector_performance(self) -> List[SectorPerformance]:
        quotes = await self.fetcher.get_quotes(SECTOR_ETFS.values())
        return rank_sector_performance(quotes)

    async def get_index_snapshot(self) -> Quote:
        return _named_index(await self.fetcher.get_quote(INDEX_SYMBOL))

    async def get_volume_anomalies(self, symbols: Optional[Iterable[str]] = None) -> List[VolumeAnomaly]:
        symbols = [s.upper() for s in (symbols or self.volume_symbols)]
        quotes = await self.fetcher.get_quotes(symbols)
        return find_volume_anomalies(quotes, symbols)

    async def get_overview(self) -> MarketOverview:
        """Fetch the index, the sector ETFs and the volume watch list in one batch."""
        symbols = [INDEX_SYMBOL, *SECTOR_ETFS.values(), *self.volume_symbols]
        quotes = await self.fetcher.get_quotes(symbols)

        index = _named_index(quotes.get(INDEX_SYMBOL) or Quote.unavailable(INDEX_SYMBOL))

        overview = MarketOverview(
            index=index,
            sectors=rank_sector_performance(quotes),
            volume_anomalies=find_volume_anomalies(quotes, self.volume_symbols),
        )
        self.logger.debug(
            "Market overview refreshed",
            index_available=index.is_available,
            anomalies=len(overview.volume_anomalies),
        )
        return overview
