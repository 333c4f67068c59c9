"""Price source protocol — market data abstraction."""
from typing import Protocol, Sequence

from ..models import PriceSnapshot, SearchResult


class PriceSource(Protocol):
    """Abstract interface for token discovery and batched price queries.

    Implementations raise on failure; callers decide how to recover.
    """

    async def search(self, query: str) -> list[SearchResult]: ...

    async def trending(self) -> list[SearchResult]: ...

    async def batch_prices(self, ids: Sequence[str]) -> list[PriceSnapshot]: ...
