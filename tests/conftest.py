"""Shared test fixtures and sample data."""
from __future__ import annotations

import asyncio
import textwrap
from pathlib import Path
from typing import Sequence

import pytest

from token_watchlist.config import (
    AppConfig,
    DiscoveryConfig,
    NotificationsConfig,
    PriceSourceConfig,
    StorageConfig,
    TelegramConfig,
    WatchlistConfig,
)
from token_watchlist.models import PriceSnapshot, SearchResult, Token
from token_watchlist.services.watchlist_store import WatchlistStore


# ---------------------------------------------------------------------------
# Fake price source
# ---------------------------------------------------------------------------


class FakePriceSource:
    """In-memory PriceSource that records calls.

    ``batch_gates`` / ``search_gates`` hold events that a call waits on before
    answering, keyed by batch call index and by query text respectively.
    """

    def __init__(
        self,
        prices: dict[str, PriceSnapshot] | None = None,
        search_results: dict[str, list[SearchResult]] | None = None,
        trending: list[SearchResult] | None = None,
    ) -> None:
        self.prices = dict(prices or {})
        self.search_results = dict(search_results or {})
        self.trending_results = list(trending or [])

        self.batch_calls: list[list[str]] = []
        self.search_calls: list[str] = []
        self.trending_calls = 0

        self.batch_gates: dict[int, asyncio.Event] = {}
        self.search_gates: dict[str, asyncio.Event] = {}
        self.batch_error: Exception | None = None
        self.search_error: Exception | None = None
        self.trending_error: Exception | None = None

    async def batch_prices(self, ids: Sequence[str]) -> list[PriceSnapshot]:
        index = len(self.batch_calls)
        self.batch_calls.append(list(ids))
        gate = self.batch_gates.get(index)
        if gate is not None:
            await gate.wait()
        if self.batch_error is not None:
            raise self.batch_error
        return [self.prices[i] for i in ids if i in self.prices]

    async def search(self, query: str) -> list[SearchResult]:
        self.search_calls.append(query)
        gate = self.search_gates.get(query)
        if gate is not None:
            await gate.wait()
        if self.search_error is not None:
            raise self.search_error
        return list(self.search_results.get(query, []))

    async def trending(self) -> list[SearchResult]:
        self.trending_calls += 1
        if self.trending_error is not None:
            raise self.trending_error
        return list(self.trending_results)


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_tokens() -> list[Token]:
    return [
        Token(id="bitcoin", symbol="btc", name="Bitcoin", holdings=2.0),
        Token(id="ethereum", symbol="eth", name="Ethereum", holdings=10.0),
        Token(id="solana", symbol="sol", name="Solana", holdings=0.0),
    ]


@pytest.fixture()
def sample_snapshots() -> dict[str, PriceSnapshot]:
    return {
        "bitcoin": PriceSnapshot(
            id="bitcoin", current_price=50000.0, change_24h_pct=2.5,
            sparkline_7d=(48000.0, 49000.0, 50000.0),
        ),
        "ethereum": PriceSnapshot(
            id="ethereum", current_price=3000.0, change_24h_pct=-1.25,
            sparkline_7d=(3100.0, 3050.0, 3000.0),
        ),
        "solana": PriceSnapshot(id="solana", current_price=150.0, change_24h_pct=0.0),
    }


@pytest.fixture()
def sample_search_results() -> list[SearchResult]:
    return [
        SearchResult(id="ethereum", name="Ethereum", symbol="ETH", thumb="https://img/eth.png"),
        SearchResult(id="ethena", name="Ethena", symbol="ENA", thumb="https://img/ena.png"),
    ]


@pytest.fixture()
def sample_trending() -> list[SearchResult]:
    return [
        SearchResult(id="bitcoin", name="Bitcoin", symbol="BTC", thumb="https://img/btc.png"),
        SearchResult(id="pepe", name="Pepe", symbol="PEPE", thumb="https://img/pepe.png"),
    ]


@pytest.fixture()
def fake_source(
    sample_snapshots: dict[str, PriceSnapshot],
    sample_search_results: list[SearchResult],
    sample_trending: list[SearchResult],
) -> FakePriceSource:
    return FakePriceSource(
        prices=sample_snapshots,
        search_results={"eth": sample_search_results},
        trending=sample_trending,
    )


# ---------------------------------------------------------------------------
# Store / config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "watchlist.json"


@pytest.fixture()
def store(store_path: Path) -> WatchlistStore:
    s = WatchlistStore(store_path)
    s.load()
    return s


@pytest.fixture()
def sample_app_config(store_path: Path) -> AppConfig:
    return AppConfig(
        storage=StorageConfig(path=str(store_path)),
        price_source=PriceSourceConfig(base_url="https://cg.example.com/api/v3", timeout=5),
        discovery=DiscoveryConfig(debounce_ms=20),
        watchlist=WatchlistConfig(page_size=2, refresh_interval_seconds=30),
        notifications=NotificationsConfig(telegram=TelegramConfig(enabled=False)),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    storage:
      path: /tmp/test-watchlist.json
      key: test_key
    price_source:
      base_url: "https://cg.example.com/api/v3/"
      vs_currency: USD
      timeout: 5
    discovery:
      debounce_ms: 150
    watchlist:
      page_size: 5
      refresh_interval_seconds: 30
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
