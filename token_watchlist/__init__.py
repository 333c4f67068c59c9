"""Token watchlist — tracked tokens, live prices and portfolio valuation."""

__version__ = "0.1.0"
