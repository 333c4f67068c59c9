"""Market data sources."""
from .coingecko import CoinGeckoSource, PriceSourceError

__all__ = ["CoinGeckoSource", "PriceSourceError"]
