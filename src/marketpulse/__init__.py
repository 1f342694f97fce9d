"""MarketPulse - data refresh and synchronization core for a stock dashboard."""

__version__ = "0.1.0"
