"""CoinGecko market data source."""
from __future__ import annotations

import logging
import ssl
from typing import Any, Sequence

import aiohttp
import certifi

from ..config import PriceSourceConfig
from ..models import PriceSnapshot, SearchResult

logger = logging.getLogger(__name__)


class PriceSourceError(RuntimeError):
    """Raised when the remote price source cannot answer a query."""


def _as_float(value: Any) -> float:
    # CoinGecko returns null for fields it has no data for
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def _parse_search_result(raw: dict[str, Any]) -> SearchResult:
    return SearchResult(
        id=str(raw.get("id", "")),
        name=str(raw.get("name", "")),
        symbol=str(raw.get("symbol", "")),
        thumb=str(raw.get("thumb") or ""),
    )


def _parse_market(raw: dict[str, Any]) -> PriceSnapshot:
    sparkline = (raw.get("sparkline_in_7d") or {}).get("price") or []
    return PriceSnapshot(
        id=str(raw.get("id", "")),
        current_price=_as_float(raw.get("current_price")),
        change_24h_pct=_as_float(raw.get("price_change_percentage_24h")),
        sparkline_7d=tuple(_as_float(p) for p in sparkline),
    )


class CoinGeckoSource:
    """Search, trending and batched market queries against CoinGecko."""

    def __init__(self, config: PriceSourceConfig) -> None:
        self.base_url = config.base_url
        self.vs_currency = config.vs_currency
        self.timeout = config.timeout

    async def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        """GET ``path`` and return the decoded JSON body.

        Raises:
            PriceSourceError: on HTTP errors, network failures or bad JSON.
        """
        url = f"{self.base_url}{path}"
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise PriceSourceError(
                            f"CoinGecko request {path} failed: HTTP {response.status}"
                        )
                    return await response.json()
        except PriceSourceError:
            raise
        except Exception as e:
            logger.error("Error querying CoinGecko %s: %s", path, e)
            raise PriceSourceError(f"CoinGecko request {path} failed: {e}") from e

    async def search(self, query: str) -> list[SearchResult]:
        data = await self._get("/search", {"query": query})
        coins = data.get("coins", []) if isinstance(data, dict) else []
        results = [_parse_search_result(c) for c in coins if c.get("id")]
        logger.debug("Search '%s' returned %d coins", query, len(results))
        return results

    async def trending(self) -> list[SearchResult]:
        data = await self._get("/search/trending")
        coins = data.get("coins", []) if isinstance(data, dict) else []
        results = [
            _parse_search_result(c.get("item", {}))
            for c in coins
            if c.get("item", {}).get("id")
        ]
        logger.debug("Trending returned %d coins", len(results))
        return results

    async def batch_prices(self, ids: Sequence[str]) -> list[PriceSnapshot]:
        """Fetch current market data for all ``ids`` in one request."""
        if not ids:
            return []

        data = await self._get(
            "/coins/markets",
            {
                "vs_currency": self.vs_currency,
                "ids": ",".join(ids),
                "sparkline": "true",
                "price_change_percentage": "24h",
            },
        )
        if not isinstance(data, list):
            raise PriceSourceError("CoinGecko /coins/markets returned unexpected payload")

        snapshots = [_parse_market(item) for item in data if item.get("id")]
        logger.info("Fetched prices for %d/%d tokens from CoinGecko", len(snapshots), len(ids))
        for snap in snapshots:
            logger.debug("  %s: $%.4f (%+.2f%%)", snap.id, snap.current_price, snap.change_24h_pct)
        return snapshots
