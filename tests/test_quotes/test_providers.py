"""Tests for provider payload parsing and quote reconciliation."""

import sys

import pytest

sys.path.append("src")
from marketpulse.quotes.models import ProviderPayload, Quote, QuoteProvider
from marketpulse.quotes.providers import (
    MalformedPayloadError,
    PROVIDERS,
    parse_alpha_vantage,
    parse_finnhub,
    parse_fmp,
    parse_proxy,
    parse_stooq,
    parse_yahoo,
    reconcile_quote,
)


class TestReconcileQuote:
    """Repair of inconsistent change fields."""

    def test_missing_previous_close_is_derived(self):
        quote = Quote(symbol="X", name="X", price=110.0, change=10.0, change_percent=0.0)

        result = reconcile_quote(quote)

        assert result.previous_close == 100.0
        assert result.change_percent == pytest.approx(10.0)

    def test_outlier_change_percent_is_recomputed(self):
        quote = Quote(
            symbol="X",
            name="X",
            price=110.0,
            change=10.0,
            change_percent=1000.0,
            previous_close=100.0,
        )

        result = reconcile_quote(quote)

        assert result.change_percent == pytest.approx(10.0)
        assert result.change == pytest.approx(10.0)

    def test_disagreeing_previous_close_is_replaced(self):
        quote = Quote(
            symbol="X",
            name="X",
            price=110.0,
            change=10.0,
            change_percent=10.0,
            previous_close=50.0,
        )

        result = reconcile_quote(quote)

        assert result.previous_close == 100.0

    def test_consistent_quote_is_returned_unchanged(self):
        quote = Quote(
            symbol="X",
            name="X",
            price=110.0,
            change=10.0,
            change_percent=10.0,
            previous_close=100.0,
        )

        assert reconcile_quote(quote) is quote


class TestParseYahoo:
    def test_parses_fields_and_prefers_post_market_price(self):
        payload = ProviderPayload(
            QuoteProvider.YAHOO,
            {
                "quoteResponse": {
                    "result": [
                        {
                            "symbol": "aapl",
                            "shortName": "Apple",
                            "regularMarketPrice": 100.0,
                            "postMarketPrice": 101.0,
                            "postMarketChange": 1.0,
                            "postMarketChangePercent": 1.0,
                            "regularMarketPreviousClose": 100.0,
                            "dividendYield": 0.005,
                            "trailingPE": 30.0,
                            "epsTrailingTwelveMonths": 6.5,
                        }
                    ]
                }
            },
        )

        quotes = parse_yahoo(payload, ["AAPL"])

        quote = quotes["AAPL"]
        assert quote.price == 101.0
        assert quote.name == "Apple"
        assert quote.dividend_yield == pytest.approx(0.5)
        assert quote.pe_ratio == 30.0
        assert quote.eps == 6.5
        assert quote.provider == "yahoo"

    def test_zero_price_items_are_dropped(self):
        payload = ProviderPayload(
            QuoteProvider.YAHOO,
            {"quoteResponse": {"result": [{"symbol": "DEAD", "regularMarketPrice": 0}]}},
        )

        assert parse_yahoo(payload, ["DEAD"]) == {}

    @pytest.mark.parametrize("body", [None, [], {"quoteResponse": {}}, {"quoteResponse": {"result": "x"}}])
    def test_malformed_bodies_raise(self, body):
        with pytest.raises(MalformedPayloadError):
            parse_yahoo(ProviderPayload(QuoteProvider.YAHOO, body), ["AAPL"])


class TestSingleSymbolProviders:
    def test_finnhub(self):
        payload = ProviderPayload(
            QuoteProvider.FINNHUB,
            {"c": 110.0, "d": 10.0, "dp": 10.0, "pc": 100.0, "o": 101.0, "h": 111.0, "l": 99.0},
        )

        quote = parse_finnhub(payload, ["AAPL"])["AAPL"]

        assert quote.price == 110.0
        assert quote.high == 111.0
        assert quote.name == "AAPL"

    def test_alpha_vantage_strips_percent_signs(self):
        payload = ProviderPayload(
            QuoteProvider.ALPHA_VANTAGE,
            {
                "Global Quote": {
                    "05. price": "110.00",
                    "09. change": "10.00",
                    "10. change percent": "10.0000%",
                    "08. previous close": "100.00",
                    "06. volume": "12345",
                }
            },
        )

        quote = parse_alpha_vantage(payload, ["MSFT"])["MSFT"]

        assert quote.change_percent == pytest.approx(10.0)
        assert quote.volume == 12345

    def test_alpha_vantage_rate_limit_note_yields_nothing(self):
        payload = ProviderPayload(QuoteProvider.ALPHA_VANTAGE, {"Note": "rate limited"})

        assert parse_alpha_vantage(payload, ["MSFT"]) == {}

    def test_fmp_empty_list(self):
        assert parse_fmp(ProviderPayload(QuoteProvider.FMP, []), ["AAPL"]) == {}

    def test_proxy_batch(self):
        payload = ProviderPayload(
            QuoteProvider.PROXY,
            {
                "quoteResponse": {
                    "result": [
                        {"symbol": "AAPL", "name": "Apple", "price": 150.0, "change": 1.5, "previousClose": 148.5},
                        {"symbol": "MSFT", "name": "Microsoft", "price": 400.0},
                    ]
                }
            },
        )

        quotes = parse_proxy(payload, ["AAPL", "MSFT"])

        assert set(quotes) == {"AAPL", "MSFT"}
        assert quotes["MSFT"].name == "Microsoft"


class TestStooq:
    def test_parses_csv_row(self):
        body = (
            "Symbol,Date,Time,Open,High,Low,Close,Volume\n"
            "MSFT.US,2024-05-01,22:00:00,400,410,395,404,1000\n"
        )

        quote = parse_stooq(ProviderPayload(QuoteProvider.STOOQ, body), ["MSFT"])["MSFT"]

        assert quote.price == 404.0
        assert quote.change == pytest.approx(4.0)
        assert quote.change_percent == pytest.approx(1.0)

    def test_no_data_row(self):
        body = (
            "Symbol,Date,Time,Open,High,Low,Close,Volume\n"
            "NOPE.US,N/D,N/D,N/D,N/D,N/D,N/D,N/D\n"
        )

        assert parse_stooq(ProviderPayload(QuoteProvider.STOOQ, body), ["NOPE"]) == {}

    def test_symbol_mapping(self):
        build = PROVIDERS["stooq"].build_params

        assert build(["AAPL"], None)["s"] == "aapl.us"
        assert build(["^GSPC"], None)["s"] == "^spx"
        assert build(["BRK.B"], None)["s"] == "brk.b"
