"""Daily price history and the technical indicators derived from it."""

from typing import List, Sequence

import pandas as pd
import yfinance as yf

from ..config.logging import get_logger
from ..portfolio.calculations import calculate_rsi, calculate_sma
from .scorer import Technicals

logger = get_logger(__name__)

HISTORY_PERIOD = "1y"


def technicals_from_closes(closes: Sequence[float]) -> Technicals:
    """RSI(14), 50-day and 200-day SMA; each is None when history is too short."""
    closes = list(closes)
    return Technicals(
        rsi=calculate_rsi(closes),
        ma50=calculate_sma(closes, 50),
        ma200=calculate_sma(closes, 200),
    )


def closes_from_history(history: pd.DataFrame) -> List[float]:
    if history is None or history.empty or "Close" not in history:
        return []
    return [float(value) for value in history["Close"].dropna()]


def load_daily_closes(symbol: str, period: str = HISTORY_PERIOD) -> List[float]:
    """
    Fetch daily closing prices with yfinance.

    Blocking; callers on the event loop run it in a worker thread.
    """
    ticker = yf.Ticker(symbol)
    history = ticker.history(period=period, interval="1d")
    closes = closes_from_history(history)
    if not closes:
        logger.warning("No price history", symbol=symbol)
    return closes
