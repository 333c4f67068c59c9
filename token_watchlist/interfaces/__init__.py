"""Protocol interfaces for the token watchlist."""
from .notifier import Notifier
from .price_source import PriceSource

__all__ = ["Notifier", "PriceSource"]
