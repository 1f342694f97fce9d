"""Portfolio arithmetic and technical indicators."""

from typing import Dict, Optional, Sequence, Tuple

STOCK_ALLOCATION_LIMIT = 5.0  # percent
SECTOR_ALLOCATION_LIMIT = 20.0  # percent


def calculate_profit_loss(
    current_price: float, avg_cost: float, units: float
) -> Tuple[float, float]:
    """
    Calculate profit/loss amount and percent.

    Returns:
        (amount, percent); percent is 0 when the purchase value is 0
    """
    purchase_value = avg_cost * units
    market_value = current_price * units
    amount = market_value - purchase_value
    percent = amount / purchase_value * 100 if purchase_value > 0 else 0.0
    return amount, percent


def calculate_sma(prices: Sequence[float], period: int) -> Optional[float]:
    """Simple moving average of the last ``period`` prices."""
    if period <= 0 or len(prices) < period:
        return None
    window = prices[-period:]
    return sum(window) / period


def calculate_rsi(prices: Sequence[float], period: int = 14) -> Optional[float]:
    """Relative Strength Index over the last ``period`` changes."""
    if len(prices) < period + 1:
        return None

    changes = [prices[i] - prices[i - 1] for i in range(1, len(prices))][-period:]
    avg_gain = sum(c for c in changes if c > 0) / period
    avg_loss = sum(-c for c in changes if c < 0) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def calculate_allocation(value: float, total_value: float) -> float:
    """Percent of ``total_value`` held in ``value``; 0 for an empty total."""
    if total_value == 0:
        return 0.0
    return value / total_value * 100


def check_allocation_limits(
    allocation: float,
    kind: str,
    limits: Optional[Dict[str, float]] = None,
) -> Tuple[bool, float]:
    """
    Check an allocation against the per-stock or per-sector limit.

    Returns:
        (valid, limit)
    """
    limits = limits or {"stock": STOCK_ALLOCATION_LIMIT, "sector": SECTOR_ALLOCATION_LIMIT}
    if kind not in limits:
        raise ValueError(f"Unknown allocation kind: {kind}")
    limit = limits[kind]
    return allocation <= limit, limit


def calculate_returns(current_value: float, initial_value: float) -> float:
    if initial_value == 0:
        return 0.0
    return (current_value - initial_value) / initial_value * 100
