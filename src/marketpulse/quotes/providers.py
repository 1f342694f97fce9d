"""Quote provider definitions and payload parsers.

Every upstream answers in its own shape. Each provider gets a parser that
turns a tagged ``ProviderPayload`` into canonical ``Quote`` records, so raw
payloads never travel past this module.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..config.logging import get_logger
from .models import ProviderPayload, Quote, QuoteProvider

logger = get_logger(__name__)

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
    "Origin": "https://finance.yahoo.com",
    "Referer": "https://finance.yahoo.com/",
}


class MalformedPayloadError(ValueError):
    """The upstream body does not have the shape its provider promises."""


def _num(value: Any) -> float:
    """Parse a loosely typed numeric field, defaulting to 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().rstrip("%").replace(",", "")
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if result == result else 0.0  # NaN check


def _int(value: Any) -> int:
    return int(_num(value))


def _opt(value: Any) -> Optional[float]:
    """Optional metric: missing or zero becomes None."""
    result = _num(value)
    return result or None


def _build_quote(symbol: str, provider: QuoteProvider, **fields: Any) -> Optional[Quote]:
    price = _num(fields.pop("price", 0))
    if price <= 0:
        return None
    return reconcile_quote(
        Quote(
            symbol=symbol,
            name=fields.pop("name", None) or symbol,
            price=price,
            provider=provider.value,
            **fields,
        )
    )


def reconcile_quote(quote: Quote) -> Quote:
    """
    Repair inconsistent change fields reported by some upstreams.

    A previous close that is missing, or disagrees with ``price - change`` by
    more than 10% of the price, is replaced by the derived value. The change
    percent is recomputed when it is missing or an obvious outlier.
    """
    price = quote.price
    previous_close = quote.previous_close
    change = quote.change
    change_percent = quote.change_percent

    if price and change:
        derived_previous = price - change
        if previous_close == 0 or abs(derived_previous - previous_close) > price * 0.1:
            previous_close = derived_previous

    if previous_close > 0:
        calculated_change = price - previous_close
        calculated_percent = calculated_change / previous_close * 100

        if abs(change_percent) > 200 and abs(calculated_percent) < 50:
            change_percent = calculated_percent
            change = calculated_change

        if change_percent == 0 and calculated_percent != 0:
            change_percent = calculated_percent
            change = calculated_change

    if (previous_close, change, change_percent) == (
        quote.previous_close,
        quote.change,
        quote.change_percent,
    ):
        return quote

    return quote.model_copy(
        update={
            "previous_close": previous_close,
            "change": change,
            "change_percent": change_percent,
        }
    )


def parse_yahoo(payload: ProviderPayload, symbols: List[str]) -> Dict[str, Quote]:
    """Parse a raw Yahoo v7 quote response (batch)."""
    body = payload.body
    try:
        results = body["quoteResponse"]["result"]
    except (KeyError, TypeError) as e:
        raise MalformedPayloadError(f"yahoo payload missing quoteResponse.result: {e}")
    if not isinstance(results, list):
        raise MalformedPayloadError("yahoo quoteResponse.result is not a list")

    quotes = {}
    for item in results:
        if not isinstance(item, dict) or not item.get("symbol"):
            continue
        symbol = str(item["symbol"]).upper()
        dividend_yield = _num(item.get("dividendYield"))
        quote = _build_quote(
            symbol,
            payload.provider,
            name=item.get("longName") or item.get("shortName"),
            price=item.get("postMarketPrice") or item.get("regularMarketPrice"),
            change=_num(
                item.get("postMarketChange", item.get("regularMarketChange"))
            ),
            change_percent=_num(
                item.get(
                    "postMarketChangePercent", item.get("regularMarketChangePercent")
                )
            ),
            previous_close=_num(item.get("regularMarketPreviousClose")),
            open=_num(item.get("regularMarketOpen")),
            high=_num(item.get("regularMarketDayHigh")),
            low=_num(item.get("regularMarketDayLow")),
            volume=_int(item.get("regularMarketVolume")),
            avg_volume=_int(item.get("averageDailyVolume3Month")),
            market_cap=_num(item.get("marketCap")),
            pe_ratio=_opt(item.get("trailingPE")),
            eps=_opt(item.get("epsTrailingTwelveMonths")),
            dividend_yield=dividend_yield * 100 if dividend_yield else None,
            fifty_two_week_high=_opt(item.get("fiftyTwoWeekHigh")),
            fifty_two_week_low=_opt(item.get("fiftyTwoWeekLow")),
        )
        if quote:
            quotes[symbol] = quote
    return quotes


def parse_proxy(payload: ProviderPayload, symbols: List[str]) -> Dict[str, Quote]:
    """Parse records already normalized by the multi-quote proxy (batch)."""
    body = payload.body
    try:
        results = body["quoteResponse"]["result"]
    except (KeyError, TypeError) as e:
        raise MalformedPayloadError(f"proxy payload missing quoteResponse.result: {e}")
    if not isinstance(results, list):
        raise MalformedPayloadError("proxy quoteResponse.result is not a list")

    quotes = {}
    for item in results:
        if not isinstance(item, dict) or not item.get("symbol"):
            continue
        symbol = str(item["symbol"]).upper()
        quote = _build_quote(
            symbol,
            payload.provider,
            name=item.get("name"),
            price=item.get("price"),
            change=_num(item.get("change")),
            change_percent=_num(item.get("changePercent")),
            previous_close=_num(item.get("previousClose")),
            open=_num(item.get("open")),
            high=_num(item.get("high")),
            low=_num(item.get("low")),
            volume=_int(item.get("volume")),
            avg_volume=_int(item.get("avgVolume")),
            market_cap=_num(item.get("marketCap")),
            pe_ratio=_opt(item.get("peRatio")),
            eps=_opt(item.get("eps")),
            dividend_yield=_opt(item.get("dividendYield")),
            fifty_two_week_high=_opt(item.get("fiftyTwoWeekHigh")),
            fifty_two_week_low=_opt(item.get("fiftyTwoWeekLow")),
        )
        if quote:
            quotes[symbol] = quote
    return quotes


def parse_finnhub(payload: ProviderPayload, symbols: List[str]) -> Dict[str, Quote]:
    body = payload.body
    if not isinstance(body, dict):
        raise MalformedPayloadError("finnhub payload is not an object")
    symbol = symbols[0]
    quote = _build_quote(
        symbol,
        payload.provider,
        price=body.get("c"),
        change=_num(body.get("d")),
        change_percent=_num(body.get("dp")),
        previous_close=_num(body.get("pc")),
        open=_num(body.get("o")),
        high=_num(body.get("h")),
        low=_num(body.get("l")),
    )
    return {symbol: quote} if quote else {}


def parse_alpha_vantage(payload: ProviderPayload, symbols: List[str]) -> Dict[str, Quote]:
    body = payload.body
    if not isinstance(body, dict):
        raise MalformedPayloadError("alphavantage payload is not an object")
    data = body.get("Global Quote") or {}
    symbol = symbols[0]
    quote = _build_quote(
        symbol,
        payload.provider,
        price=data.get("05. price"),
        change=_num(data.get("09. change")),
        change_percent=_num(data.get("10. change percent")),
        previous_close=_num(data.get("08. previous close")),
        open=_num(data.get("02. open")),
        high=_num(data.get("03. high")),
        low=_num(data.get("04. low")),
        volume=_int(data.get("06. volume")),
    )
    return {symbol: quote} if quote else {}


def parse_twelve_data(payload: ProviderPayload, symbols: List[str]) -> Dict[str, Quote]:
    body = payload.body
    if not isinstance(body, dict):
        raise MalformedPayloadError("twelvedata payload is not an object")
    symbol = symbols[0]
    week_range = body.get("fifty_two_week") or {}
    quote = _build_quote(
        symbol,
        payload.provider,
        name=body.get("name"),
        price=body.get("close"),
        change=_num(body.get("change")),
        change_percent=_num(body.get("percent_change")),
        previous_close=_num(body.get("previous_close")),
        open=_num(body.get("open")),
        high=_num(body.get("high")),
        low=_num(body.get("low")),
        volume=_int(body.get("volume")),
        avg_volume=_int(body.get("average_volume")),
        fifty_two_week_high=_opt(week_range.get("high")),
        fifty_two_week_low=_opt(week_range.get("low")),
    )
    return {symbol: quote} if quote else {}


def parse_fmp(payload: ProviderPayload, symbols: List[str]) -> Dict[str, Quote]:
    body = payload.body
    if not isinstance(body, list):
        raise MalformedPayloadError("fmp payload is not a list")
    if not body or not isinstance(body[0], dict):
        return {}
    data = body[0]
    symbol = symbols[0]
    quote = _build_quote(
        symbol,
        payload.provider,
        name=data.get("name"),
        price=data.get("price"),
        change=_num(data.get("change")),
        change_percent=_num(data.get("changesPercentage")),
        previous_close=_num(data.get("previousClose")),
        open=_num(data.get("open")),
        high=_num(data.get("dayHigh")),
        low=_num(data.get("dayLow")),
        volume=_int(data.get("volume")),
        avg_volume=_int(data.get("avgVolume")),
        market_cap=_num(data.get("marketCap")),
        pe_ratio=_opt(data.get("pe")),
        eps=_opt(data.get("eps")),
        fifty_two_week_high=_opt(data.get("yearHigh")),
        fifty_two_week_low=_opt(data.get("yearLow")),
    )
    return {symbol: quote} if quote else {}


def parse_stooq(payload: ProviderPayload, symbols: List[str]) -> Dict[str, Quote]:
    """Parse Stooq CSV: symbol,date,time,open,high,low,close,volume."""
    body = payload.body
    if not isinstance(body, str):
        raise MalformedPayloadError("stooq payload is not text")
    lines = [line for line in body.strip().splitlines() if line.strip()]
    if len(lines) < 2:
        return {}
    values = lines[1].split(",")
    if len(values) < 8 or "N/D" in values[3:7]:
        return {}

    symbol = symbols[0]
    open_price = _num(values[3])
    close = _num(values[6])
    quote = _build_quote(
        symbol,
        payload.provider,
        price=close,
        change=close - open_price,
        change_percent=(close - open_price) / open_price * 100 if open_price else 0.0,
        open=open_price,
        high=_num(values[4]),
        low=_num(values[5]),
        volume=_int(values[7]),
    )
    return {symbol: quote} if quote else {}


_STOOQ_INDEX_SYMBOLS = {"^gspc": "^spx", "^ixic": "^ndq"}


def _stooq_params(symbols: List[str], api_key: Optional[str]) -> Dict[str, str]:
    symbol = symbols[0].lower()
    if symbol in _STOOQ_INDEX_SYMBOLS:
        symbol = _STOOQ_INDEX_SYMBOLS[symbol]
    elif not symbol.startswith("^") and "." not in symbol:
        symbol += ".us"
    return {"s": symbol, "f": "sd2t2ohlcv", "h": "", "e": "csv"}


@dataclass(frozen=True)
class ProviderSpec:
    """How to ask one upstream for quotes and how to read its answer."""

    provider: QuoteProvider
    url: str
    parse: Callable[[ProviderPayload, List[str]], Dict[str, Quote]]
    build_params: Callable[[List[str], Optional[str]], Dict[str, str]]
    batch: bool = False
    requires_key: bool = False
    text_response: bool = False
    headers: Dict[str, str] = field(default_factory=lambda: dict(BROWSER_HEADERS))

    @property
    def name(self) -> str:
        return self.provider.value


PROVIDERS: Dict[str, ProviderSpec] = {
    "yahoo": ProviderSpec(
        provider=QuoteProvider.YAHOO,
        url="https://query2.finance.yahoo.com/v7/finance/quote",
        parse=parse_yahoo,
        build_params=lambda symbols, key: {"symbols": ",".join(symbols)},
        batch=True,
    ),
    "proxy": ProviderSpec(
        provider=QuoteProvider.PROXY,
        url="/api/multi-quote",
        parse=parse_proxy,
        build_params=lambda symbols, key: {"symbols": ",".join(symbols)},
        batch=True,
    ),
    "finnhub": ProviderSpec(
        provider=QuoteProvider.FINNHUB,
        url="https://finnhub.io/api/v1/quote",
        parse=parse_finnhub,
        build_params=lambda symbols, key: {"symbol": symbols[0], "token": key},
        requires_key=True,
    ),
    "alphavantage": ProviderSpec(
        provider=QuoteProvider.ALPHA_VANTAGE,
        url="https://www.alphavantage.co/query",
        parse=parse_alpha_vantage,
        build_params=lambda symbols, key: {
            "function": "GLOBAL_QUOTE",
            "symbol": symbols[0],
            "apikey": key,
        },
        requires_key=True,
    ),
    "twelvedata": ProviderSpec(
        provider=QuoteProvider.TWELVE_DATA,
        url="https://api.twelvedata.com/quote",
        parse=parse_twelve_data,
        build_params=lambda symbols, key: {"symbol": symbols[0], "apikey": key},
        requires_key=True,
    ),
    "fmp": ProviderSpec(
        provider=QuoteProvider.FMP,
        url="https://financialmodelingprep.com/api/v3/quote/{symbol}",
        parse=parse_fmp,
        build_params=lambda symbols, key: {"apikey": key},
        requires_key=True,
    ),
    "stooq": ProviderSpec(
        provider=QuoteProvider.STOOQ,
        url="https://stooq.com/q/l/",
        parse=parse_stooq,
        build_params=_stooq_params,
        text_response=True,
    ),
}
