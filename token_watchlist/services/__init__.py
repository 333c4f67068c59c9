"""Service modules"""
from .aggregator import aggregate, token_color
from .discovery import DiscoverySearch
from .price_cache import PriceCache
from .row_projector import Pagination, project
from .tracker import Tracker
from .watchlist_store import WatchlistStore

__all__ = [
    "aggregate",
    "token_color",
    "DiscoverySearch",
    "PriceCache",
    "Pagination",
    "project",
    "Tracker",
    "WatchlistStore",
]
