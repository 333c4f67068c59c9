"""Portfolio aggregation — total value and per-token breakdown."""
from __future__ import annotations

from typing import Mapping, Sequence

from ..models import BreakdownItem, PortfolioSummary, PriceSnapshot, Token


def token_color(token_id: str) -> str:
    """Deterministic HSL colour for ``token_id``.

    Hashes the UTF-16 code units of the id into a hue in [0, 360).
    """
    hue = 0
    encoded = token_id.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        hue = (hue * 31 + int.from_bytes(encoded[i:i + 2], "little")) % 360
    return f"hsl({hue} 60% 60%)"


def _price(snapshots: Mapping[str, PriceSnapshot], token_id: str) -> float:
    snap = snapshots.get(token_id)
    return snap.current_price if snap is not None else 0.0


def aggregate(
    tokens: Sequence[Token], snapshots: Mapping[str, PriceSnapshot]
) -> PortfolioSummary:
    """Total portfolio value plus breakdown of tokens worth more than zero.

    Tokens without a snapshot are valued at zero. The breakdown is sorted by
    value, largest first; equal values keep watchlist order.
    """
    values = [(token, _price(snapshots, token.id) * token.holdings) for token in tokens]
    total = sum(value for _, value in values)

    breakdown = [
        BreakdownItem(
            id=token.id,
            name=token.name,
            symbol=token.symbol.upper(),
            value=value,
            percentage=(value / total * 100) if total > 0 else 0.0,
            color=token_color(token.id),
        )
        for token, value in values
        if value > 0
    ]
    breakdown.sort(key=lambda item: item.value, reverse=True)

    return PortfolioSummary(total_value=total, breakdown=tuple(breakdown))
