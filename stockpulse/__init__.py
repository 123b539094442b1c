"""StockPulse API: market data, sentiment and news endpoints for the dashboard."""

__version__ = "1.0.0"
