"""Recommendation scoring and sector ranking."""

from .indicators import technicals_from_closes
from .scorer import (
    Fundamentals,
    Recommendation,
    RecommendationLabel,
    Technicals,
    label_for_score,
    score,
)
from .sectors import SECTORS, SymbolMatch, search_symbols, sector_for_symbol, symbols_for_sector
from .service import RecommendationService, assign_allocations

__all__ = [
    "Fundamentals",
    "Recommendation",
    "RecommendationLabel",
    "RecommendationService",
    "SECTORS",
    "SymbolMatch",
    "Technicals",
    "assign_allocations",
    "label_for_score",
    "score",
    "search_symbols",
    "sector_for_symbol",
    "symbols_for_sector",
    "technicals_from_closes",
]
