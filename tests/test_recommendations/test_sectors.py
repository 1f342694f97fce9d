"""Tests for sector lookups and local symbol search."""

import sys

sys.path.append("src")
from marketpulse.recommendations.sectors import (
    search_symbols,
    sector_for_symbol,
    symbols_for_sector,
)


class TestSectorLookup:
    def test_sector_for_symbol(self):
        assert sector_for_symbol("aapl") == "Technology"
        assert sector_for_symbol("SPY") == "Diversified"
        assert sector_for_symbol("ZZZZ") == "Unknown"

    def test_symbols_for_unknown_sector(self):
        assert symbols_for_sector("Nope") == []


class TestSearchSymbols:
    def test_matches_symbol_or_name(self):
        assert [m.symbol for m in search_symbols("apple")] == ["AAPL"]
        assert search_symbols("NVDA")[0].name == "NVIDIA Corporation"

    def test_includes_etfs(self):
        match = next(m for m in search_symbols("qqq"))

        assert match.kind == "ETF"
        assert match.name == "Invesco QQQ Trust"

    def test_symbols_are_unique(self):
        symbols = [m.symbol for m in search_symbols("a")]

        assert len(symbols) == len(set(symbols))

    def test_limit(self):
        assert len(search_symbols("a")) == 20
        assert len(search_symbols("a", limit=3)) == 3

    def test_empty_query(self):
        assert search_symbols("") == []
        assert search_symbols("   ") == []
