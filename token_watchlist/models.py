"""Data models — all frozen (immutable)."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TokenInput:
    """Candidate token to add to the watchlist."""

    id: str
    symbol: str
    name: str
    image: str = ""


@dataclass(frozen=True)
class Token:
    """Tracked token with the user's holding quantity."""

    id: str
    symbol: str
    name: str
    image: str = ""
    holdings: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "image": self.image,
            "holdings": self.holdings,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Token:
        """Build a Token from a persisted record.

        Raises:
            ValueError: if the record has no usable id.
        """
        token_id = raw.get("id")
        if not isinstance(token_id, str) or not token_id:
            raise ValueError(f"Token record has no id: {raw!r}")
        return cls(
            id=token_id,
            symbol=str(raw.get("symbol") or ""),
            name=str(raw.get("name") or ""),
            image=str(raw.get("image") or ""),
            holdings=parse_holdings(raw.get("holdings", 0)),
        )


@dataclass(frozen=True)
class WatchlistState:
    """Ordered, id-unique token list. Insertion order is display order."""

    tokens: tuple[Token, ...] = ()

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(t.id for t in self.tokens)


@dataclass(frozen=True)
class PriceSnapshot:
    """One refresh cycle's market data for a token."""

    id: str
    current_price: float = 0.0
    change_24h_pct: float = 0.0
    sparkline_7d: tuple[float, ...] = ()


@dataclass(frozen=True)
class SearchResult:
    """Discovery candidate returned by search or trending queries."""

    id: str
    name: str
    symbol: str
    thumb: str = ""

    def to_token_input(self) -> TokenInput:
        return TokenInput(id=self.id, symbol=self.symbol, name=self.name, image=self.thumb)


@dataclass(frozen=True)
class Row:
    """Display-ready watchlist row. Derived, never stored."""

    id: str
    symbol: str
    name: str
    image: str
    holdings: float
    current_price: float
    change_24h_pct: float
    value: float
    sparkline_7d: tuple[float, ...]
    is_positive: bool


@dataclass(frozen=True)
class RowPage:
    rows: tuple[Row, ...]
    total_pages: int
    page: int


@dataclass(frozen=True)
class BreakdownItem:
    """Single token's share of the total portfolio value."""

    id: str
    name: str
    symbol: str
    value: float
    percentage: float
    color: str


@dataclass(frozen=True)
class PortfolioSummary:
    total_value: float
    breakdown: tuple[BreakdownItem, ...] = ()


def parse_holdings(raw: Any) -> float:
    """Coerce user-entered holdings to a finite, non-negative float.

    Anything unparsable, NaN, infinite or negative becomes ``0.0``.
    """
    if isinstance(raw, bool):
        return 0.0
    try:
        value = float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value
