"""Sector membership used for recommendations and position defaults."""

from typing import Dict, List, NamedTuple, Tuple

STOCKS_BY_SECTOR: Dict[str, List[Tuple[str, str]]] = {
    "Technology": [
        ("AAPL", "Apple Inc."),
        ("MSFT", "Microsoft Corporation"),
        ("NVDA", "NVIDIA Corporation"),
        ("GOOGL", "Alphabet Inc."),
        ("META", "Meta Platforms Inc."),
        ("AMD", "Advanced Micro Devices"),
        ("AVGO", "Broadcom Inc."),
        ("ORCL", "Oracle Corporation"),
        ("ADBE", "Adobe Inc."),
        ("CRM", "Salesforce Inc."),
    ],
    "Healthcare": [
        ("UNH", "UnitedHealth Group"),
        ("JNJ", "Johnson & Johnson"),
        ("LLY", "Eli Lilly and Company"),
        ("ABBV", "AbbVie Inc."),
        ("MRK", "Merck & Co."),
        ("PFE", "Pfizer Inc."),
    ],
    "Financial Services": [
        ("JPM", "JPMorgan Chase & Co."),
        ("V", "Visa Inc."),
        ("MA", "Mastercard Inc."),
        ("BAC", "Bank of America"),
        ("GS", "Goldman Sachs"),
    ],
    "Consumer Cyclical": [
        ("AMZN", "Amazon.com Inc."),
        ("TSLA", "Tesla Inc."),
        ("HD", "The Home Depot"),
        ("NKE", "Nike Inc."),
        ("MCD", "McDonald's Corporation"),
    ],
    "Industrials": [
        ("CAT", "Caterpillar Inc."),
        ("BA", "Boeing Company"),
        ("HON", "Honeywell International"),
        ("GE", "General Electric"),
    ],
    "Communication Services": [
        ("NFLX", "Netflix Inc."),
        ("DIS", "The Walt Disney Company"),
        ("CMCSA", "Comcast Corporation"),
        ("T", "AT&T Inc."),
        ("VZ", "Verizon Communications"),
    ],
    "Consumer Defensive": [
        ("WMT", "Walmart Inc."),
        ("PG", "Procter & Gamble"),
        ("KO", "The Coca-Cola Company"),
        ("PEP", "PepsiCo Inc."),
        ("COST", "Costco Wholesale"),
    ],
    "Energy": [
        ("XOM", "Exxon Mobil Corporation"),
        ("CVX", "Chevron Corporation"),
        ("COP", "ConocoPhillips"),
        ("SLB", "Schlumberger"),
    ],
    "Utilities": [("NEE", "NextEra Energy"), ("DUK", "Duke Energy"), ("SO", "Southern Company")],
    "Real Estate": [("AMT", "American Tower Corporation"), ("PLD", "Prologis Inc."), ("SPG", "Simon Property Group")],
    "Basic Materials": [("LIN", "Linde plc"), ("APD", "Air Products and Chemicals"), ("FCX", "Freeport-McMoRan")],
    "Transportation": [
        ("UPS", "United Parcel Service"),
        ("FDX", "FedEx Corporation"),
        ("UNP", "Union Pacific Corporation"),
        ("DAL", "Delta Air Lines"),
    ],
}

ETF_SECTORS: Dict[str, str] = {
    "VOO": "Diversified",
    "SPY": "Diversified",
    "VTI": "Diversified",
    "DIA": "Diversified",
    "QQQ": "Technology",
    "XLK": "Technology",
    "XLV": "Healthcare",
    "XLF": "Financial Services",
    "IWM": "Small Cap",
}

SECTORS = list(STOCKS_BY_SECTOR)


def symbols_for_sector(sector: str) -> List[str]:
    return [symbol for symbol, _ in STOCKS_BY_SECTOR.get(sector, [])]


def sector_for_symbol(symbol: str) -> str:
    """Return the first sector listing ``symbol``, ETFs first, else 'Unknown'."""
    symbol = symbol.upper()
    if symbol in ETF_SECTORS:
        return ETF_SECTORS[symbol]
    for sector, stocks in STOCKS_BY_SECTOR.items():
        if any(s == symbol for s, _ in stocks):
            return sector
    return "Unknown"


ETF_NAMES: Dict[str, str] = {
    "VOO": "Vanguard S&P 500 ETF",
    "SPY": "SPDR S&P 500 ETF Trust",
    "VTI": "Vanguard Total Stock Market ETF",
    "DIA": "SPDR Dow Jones Industrial Average ETF",
    "QQQ": "Invesco QQQ Trust",
    "XLK": "Technology Select Sector SPDR Fund",
    "XLV": "Health Care Select Sector SPDR Fund",
    "XLF": "Financial Select Sector SPDR Fund",
    "IWM": "iShares Russell 2000 ETF",
}


class SymbolMatch(NamedTuple):
    symbol: str
    name: str
    sector: str
    kind: str  # "Stock" or "ETF"


def _symbol_table() -> List[SymbolMatch]:
    stocks = [
        SymbolMatch(symbol, name, sector, "Stock")
        for sector, entries in STOCKS_BY_SECTOR.items()
        for symbol, name in entries
    ]
    etfs = [
        SymbolMatch(symbol, ETF_NAMES.get(symbol, symbol), sector, "ETF")
        for symbol, sector in ETF_SECTORS.items()
    ]
    return stocks + etfs


def search_symbols(query: str, limit: int = 20) -> List[SymbolMatch]:
    """
    Search the local symbol table by symbol or company name.

    Matching is a case-insensitive substring test. The first entry for a
    symbol wins, so a stock listed in two sectors appears once.
    """
    query = (query or "").strip().lower()
    if not query:
        return []

    matches: Dict[str, SymbolMatch] = {}
    for entry in _symbol_table():
        if entry.symbol in matches:
            continue
        if query in entry.symbol.lower() or query in entry.name.lower():
            matches[entry.symbol] = entry
            if len(matches) >= limit:
                break
    return list(matches.values())
