"""Watchlist row projection and pagination."""
from __future__ import annotations

import math
from typing import Mapping, Sequence

from ..models import PriceSnapshot, Row, RowPage, Token


def to_row(token: Token, snapshot: PriceSnapshot | None) -> Row:
    """Join a token with its snapshot. A missing snapshot yields zeroed fields."""
    price = snapshot.current_price if snapshot else 0.0
    change = snapshot.change_24h_pct if snapshot else 0.0
    return Row(
        id=token.id,
        symbol=token.symbol,
        name=token.name,
        image=token.image,
        holdings=token.holdings,
        current_price=price,
        change_24h_pct=change,
        value=price * token.holdings,
        sparkline_7d=snapshot.sparkline_7d if snapshot else (),
        is_positive=change >= 0,
    )


def total_pages(token_count: int, page_size: int) -> int:
    """Number of pages, never less than one."""
    if page_size < 1:
        raise ValueError(f"page_size must be at least 1, got {page_size}")
    return max(1, math.ceil(token_count / page_size))


def project(
    tokens: Sequence[Token],
    snapshots: Mapping[str, PriceSnapshot],
    page: int,
    page_size: int,
) -> RowPage:
    """Rows for 1-based ``page`` in watchlist order."""
    pages = total_pages(len(tokens), page_size)
    start = (page - 1) * page_size
    window = tokens[max(start, 0):max(page * page_size, 0)]
    rows = tuple(to_row(t, snapshots.get(t.id)) for t in window)
    return RowPage(rows=rows, total_pages=pages, page=page)


class Pagination:
    """Current page of the watchlist table.

    Jumps back to page 1 whenever the number of tokens changes.
    """

    def __init__(self, page_size: int) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")
        self.page_size = page_size
        self.page = 1
        self._token_count: int | None = None

    def observe(self, token_count: int) -> None:
        if token_count != self._token_count:
            self._token_count = token_count
            self.page = 1

    @property
    def total_pages(self) -> int:
        return total_pages(self._token_count or 0, self.page_size)

    def go_to(self, page: int) -> int:
        self.page = min(max(page, 1), self.total_pages)
        return self.page

    def next(self) -> int:
        return self.go_to(self.page + 1)

    def previous(self) -> int:
        return self.go_to(self.page - 1)

    def project(
        self, tokens: Sequence[Token], snapshots: Mapping[str, PriceSnapshot]
    ) -> RowPage:
        self.observe(len(tokens))
        return project(tokens, snapshots, self.page, self.page_size)
