"""Tests for portfolio arithmetic and indicators."""

import sys

import pytest

sys.path.append("src")
from marketpulse.portfolio.calculations import (
    calculate_allocation,
    calculate_profit_loss,
    calculate_returns,
    calculate_rsi,
    calculate_sma,
    check_allocation_limits,
)


class TestProfitLoss:
    def test_gain(self):
        amount, percent = calculate_profit_loss(110.0, 100.0, 10)

        assert amount == pytest.approx(100.0)
        assert percent == pytest.approx(10.0)

    def test_loss(self):
        amount, percent = calculate_profit_loss(90.0, 100.0, 2)

        assert amount == pytest.approx(-20.0)
        assert percent == pytest.approx(-10.0)

    def test_zero_purchase_value(self):
        assert calculate_profit_loss(10.0, 0.0, 5) == (50.0, 0.0)


class TestIndicators:
    def test_sma(self):
        assert calculate_sma([1, 2, 3, 4, 5], 2) == 4.5

    def test_sma_not_enough_data(self):
        assert calculate_sma([1, 2], 3) is None
        assert calculate_sma([1, 2], 0) is None

    def test_rsi_all_gains(self):
        assert calculate_rsi(list(range(1, 20))) == 100.0

    def test_rsi_balanced(self):
        prices = [10, 11] * 8
        assert calculate_rsi(prices) == pytest.approx(50.0)

    def test_rsi_not_enough_data(self):
        assert calculate_rsi([1.0] * 14) is None


class TestAllocation:
    def test_allocation_percent(self):
        assert calculate_allocation(25.0, 100.0) == 25.0
        assert calculate_allocation(25.0, 0.0) == 0.0

    def test_limits(self):
        assert check_allocation_limits(5.0, "stock") == (True, 5.0)
        assert check_allocation_limits(5.1, "stock") == (False, 5.0)
        assert check_allocation_limits(21.0, "sector") == (False, 20.0)
        assert check_allocation_limits(30.0, "sector", {"sector": 40.0}) == (True, 40.0)

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            check_allocation_limits(1.0, "country")

    def test_returns(self):
        assert calculate_returns(120.0, 100.0) == pytest.approx(20.0)
        assert calculate_returns(120.0, 0.0) == 0.0
