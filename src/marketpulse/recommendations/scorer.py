"""
Deterministic recommendation scoring.

``score`` starts from 50, applies bounded adjustments from technical
momentum, fundamentals, news sentiment and social sentiment, then clamps
to 0-100. The label depends on the final score alone.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from ..quotes.models import NewsArticle, Quote, Sentiment

BASE_SCORE = 50
BUY_THRESHOLD = 75
HOLD_THRESHOLD = 50
NEWS_WEIGHT = 8
SOCIAL_THRESHOLD = 25.0
SOCIAL_WEIGHT = 5


class RecommendationLabel(str, Enum):
    BUY = "Buy"
    HOLD = "Hold"
    SELL = "Sell"


@dataclass(frozen=True)
class Technicals:
    rsi: Optional[float] = None
    ma50: Optional[float] = None
    ma200: Optional[float] = None


@dataclass(frozen=True)
class Fundamentals:
    pe_ratio: Optional[float] = None
    eps: Optional[float] = None


@dataclass
class Recommendation:
    """Advisory output of one scoring pass; never persisted."""

    symbol: str
    score: int
    label: RecommendationLabel
    reasons: List[str] = field(default_factory=list)
    name: str = ""
    sector: str = ""
    price: float = 0.0
    suggested_allocation: float = 0.0
    technicals: Technicals = field(default_factory=Technicals)
    fundamentals: Fundamentals = field(default_factory=Fundamentals)
    news: List[NewsArticle] = field(default_factory=list)


def label_for_score(score: float) -> RecommendationLabel:
    if score >= BUY_THRESHOLD:
        return RecommendationLabel.BUY
    if score >= HOLD_THRESHOLD:
        return RecommendationLabel.HOLD
    return RecommendationLabel.SELL


def _count_sentiment(news: Sequence[NewsArticle]):
    positive = sum(1 for n in news if n.sentiment == Sentiment.POSITIVE)
    negative = sum(1 for n in news if n.sentiment == Sentiment.NEGATIVE)
    return positive, negative


def _technical_adjustment(price: float, technicals: Technicals) -> int:
    adjustment = 0
    rsi = technicals.rsi
    if rsi is not None:
        if 30 <= rsi <= 70:
            adjustment += 10
        elif rsi < 30:
            adjustment += 15  # oversold
        else:
            adjustment -= 10  # overbought

    ma50, ma200 = technicals.ma50, technicals.ma200
    if ma50 is not None and ma200 is not None:
        if ma50 > ma200 and price > ma50:
            adjustment += 15
        elif price > ma50:
            adjustment += 10
        elif price < ma200:
            adjustment -= 10
    return adjustment


def _momentum_adjustment(change_percent: float) -> int:
    if change_percent > 2:
        return 10
    if change_percent > 0:
        return 5
    if change_percent < -2:
        return -10
    return 0


def _fundamental_adjustment(fundamentals: Fundamentals) -> int:
    pe = fundamentals.pe_ratio
    if pe is None or pe <= 0:
        return 0
    if 10 <= pe <= 25:
        return 15
    if pe < 10:
        return 10
    if pe > 40:
        return -10
    return 0


def _social_adjustment(social_sentiment: float) -> int:
    if social_sentiment >= SOCIAL_THRESHOLD:
        return SOCIAL_WEIGHT
    if social_sentiment <= -SOCIAL_THRESHOLD:
        return -SOCIAL_WEIGHT
    return 0


def build_reasons(
    score: int,
    quote: Quote,
    technicals: Technicals,
    fundamentals: Fundamentals,
    news: Sequence[NewsArticle],
    social_sentiment: float,
) -> List[str]:
    reasons = []

    rsi = technicals.rsi
    if rsi is not None:
        if rsi < 30:
            reasons.append(f"RSI at {rsi:.1f} indicates oversold conditions, potential buying opportunity")
        elif rsi > 70:
            reasons.append(f"RSI at {rsi:.1f} suggests overbought conditions, exercise caution")
        else:
            reasons.append(f"RSI at {rsi:.1f} shows neutral momentum")

    if technicals.ma50 is not None and technicals.ma200 is not None:
        if technicals.ma50 > technicals.ma200:
            reasons.append("Bullish trend: 50-day MA above 200-day MA (golden cross)")
        else:
            reasons.append("Bearish trend: 50-day MA below 200-day MA")

    change = quote.change_percent
    if change > 2:
        reasons.append(f"Strong positive momentum with {change:.2f}% recent gain")
    elif change < -2:
        reasons.append(f"Negative momentum with {change:.2f}% recent decline")

    pe = fundamentals.pe_ratio
    if pe is not None and pe > 0:
        if pe < 15:
            reasons.append(f"P/E ratio of {pe:.2f} suggests potential undervaluation")
        elif pe > 30:
            reasons.append(f"High P/E ratio of {pe:.2f} indicates premium valuation")

    positive, negative = _count_sentiment(news)
    if positive > negative:
        reasons.append(f"Positive news sentiment with {positive} favorable headlines")
    elif negative > positive:
        reasons.append(f"Negative news sentiment with {negative} concerning headlines")

    if social_sentiment >= SOCIAL_THRESHOLD:
        reasons.append(f"Bullish social sentiment ({social_sentiment:.0f})")
    elif social_sentiment <= -SOCIAL_THRESHOLD:
        reasons.append(f"Bearish social sentiment ({social_sentiment:.0f})")

    if score >= BUY_THRESHOLD:
        reasons.append(f"Strong overall score of {score}/100 across technical and fundamental metrics")
    elif score < HOLD_THRESHOLD:
        reasons.append(f"Weak overall score of {score}/100 suggests heightened risk")

    return reasons


def score(
    quote: Quote,
    technicals: Optional[Technicals] = None,
    fundamentals: Optional[Fundamentals] = None,
    news: Sequence[NewsArticle] = (),
    social_sentiment: float = 0.0,
) -> Recommendation:
    """
    Score one symbol.

    Args:
        quote: Latest quote; price and change percent feed the technical group
        technicals: RSI and moving averages, any of which may be missing
        fundamentals: P/E is used when positive
        news: Articles whose sentiment moves the score by 8 points each
        social_sentiment: Weighted social score in [-100, 100]

    Returns:
        Recommendation with score clamped to [0, 100]
    """
    technicals = technicals or Technicals()
    if fundamentals is None:
        fundamentals = Fundamentals(pe_ratio=quote.pe_ratio, eps=quote.eps)

    positive, negative = _count_sentiment(news)
    raw = (
        BASE_SCORE
        + _technical_adjustment(quote.price, technicals)
        + _momentum_adjustment(quote.change_percent)
        + _fundamental_adjustment(fundamentals)
        + (positive - negative) * NEWS_WEIGHT
        + _social_adjustment(social_sentiment)
    )
    final = max(0, min(100, raw))

    return Recommendation(
        symbol=quote.symbol,
        score=final,
        label=label_for_score(final),
        reasons=build_reasons(final, quote, technicals, fundamentals, news, social_sentiment),
        name=quote.name,
        price=quote.price,
        technicals=technicals,
        fundamentals=fundamentals,
        news=list(news),
    )
