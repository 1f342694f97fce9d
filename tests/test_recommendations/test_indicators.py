"""Tests for price history helpers."""

import sys
from unittest.mock import patch

import pandas as pd
import pytest

sys.path.append("src")
from marketpulse.recommendations.indicators import (
    closes_from_history,
    load_daily_closes,
    technicals_from_closes,
)
from marketpulse.recommendations.sectors import sector_for_symbol, symbols_for_sector


class TestTechnicals:
    def test_full_history(self):
        technicals = technicals_from_closes(range(1, 201))

        assert technicals.rsi == 100.0
        assert technicals.ma50 == pytest.approx(175.5)
        assert technicals.ma200 == pytest.approx(100.5)

    def test_short_history(self):
        technicals = technicals_from_closes([1.0, 2.0, 3.0])

        assert technicals.rsi is None
        assert technicals.ma50 is None
        assert technicals.ma200 is None


class TestHistory:
    def test_closes_drop_missing_values(self):
        frame = pd.DataFrame({"Close": [1.0, float("nan"), 3.0]})

        assert closes_from_history(frame) == [1.0, 3.0]

    def test_empty_frame(self):
        assert closes_from_history(pd.DataFrame()) == []

    @patch("marketpulse.recommendations.indicators.yf.Ticker")
    def test_load_daily_closes(self, mock_ticker):
        mock_ticker.return_value.history.return_value = pd.DataFrame({"Close": [10.0, 11.0]})

        closes = load_daily_closes("AAPL")

        assert closes == [10.0, 11.0]
        mock_ticker.assert_called_once_with("AAPL")
        mock_ticker.return_value.history.assert_called_once_with(period="1y", interval="1d")


class TestSectors:
    def test_lookup(self):
        assert "AAPL" in symbols_for_sector("Technology")
        assert symbols_for_sector("Nowhere") == []
        assert sector_for_symbol("jpm") == "Financial Services"
        assert sector_for_symbol("QQQ") == "Technology"
        assert sector_for_symbol("ZZZZ") == "Unknown"
