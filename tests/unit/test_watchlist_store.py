"""Unit tests for the durable watchlist store."""
from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from token_watchlist.models import Token, TokenInput
from token_watchlist.services.watchlist_store import WatchlistStore

BTC = TokenInput(id="bitcoin", symbol="btc", name="Bitcoin", image="https://img/btc.png")
ETH = TokenInput(id="ethereum", symbol="eth", name="Ethereum", image="https://img/eth.png")
SOL = TokenInput(id="solana", symbol="sol", name="Solana", image="https://img/sol.png")


class TestAddTokens:
    def test_appends_in_input_order_with_zero_holdings(self, store: WatchlistStore) -> None:
        added = store.add_tokens([BTC, ETH])
        assert store.ids == ("bitcoin", "ethereum")
        assert all(t.holdings == 0.0 for t in store.tokens)
        assert [t.id for t in added] == ["bitcoin", "ethereum"]

    def test_skips_existing_and_preserves_order(self, store: WatchlistStore) -> None:
        store.add_tokens([ETH])
        store.set_holdings("ethereum", 4.0)
        store.add_tokens([BTC, ETH, SOL])
        assert store.ids == ("ethereum", "bitcoin", "solana")
        assert store.get("ethereum").holdings == 4.0

    def test_duplicates_within_batch_added_once(self, store: WatchlistStore) -> None:
        store.add_tokens([BTC, BTC, ETH])
        assert store.ids == ("bitcoin", "ethereum")

    def test_only_existing_ids_is_noop_without_write(
        self, store: WatchlistStore, store_path: Path
    ) -> None:
        store.add_tokens([BTC])
        before = store_path.stat().st_mtime_ns
        calls: list[tuple[str, ...]] = []
        store.subscribe(calls.append)

        assert store.add_tokens([BTC]) == ()
        assert store.ids == ("bitcoin",)
        assert calls == []
        assert store_path.stat().st_mtime_ns == before

    def test_never_produces_duplicate_ids(self, store: WatchlistStore) -> None:
        for batch in ([BTC], [ETH, BTC], [SOL, ETH, SOL], [BTC, ETH, SOL]):
            store.add_tokens(batch)
            assert len(set(store.ids)) == len(store.ids)
        assert store.ids == ("bitcoin", "ethereum", "solana")


class TestRemoveToken:
    def test_removes_present_token(self, store: WatchlistStore) -> None:
        store.add_tokens([BTC, ETH])
        store.remove_token("bitcoin")
        assert store.ids == ("ethereum",)

    def test_absent_id_is_ignored(self, store: WatchlistStore) -> None:
        store.add_tokens([BTC])
        store.remove_token("dogecoin")
        assert store.ids == ("bitcoin",)

    def test_readd_after_remove_resets_holdings(self, store: WatchlistStore) -> None:
        store.add_tokens([BTC])
        store.set_holdings("bitcoin", 12.5)
        store.remove_token("bitcoin")
        store.add_tokens([BTC])
        assert store.get("bitcoin").holdings == 0.0


class TestSetHoldings:
    def test_updates_matching_token(self, store: WatchlistStore) -> None:
        store.add_tokens([BTC, ETH])
        store.set_holdings("ethereum", 3.25)
        assert store.get("ethereum").holdings == 3.25
        assert store.get("bitcoin").holdings == 0.0

    def test_unknown_id_is_noop(self, store: WatchlistStore) -> None:
        calls: list[tuple[str, ...]] = []
        store.subscribe(calls.append)
        store.set_holdings("dogecoin", 1.0)
        assert calls == []
        assert len(store) == 0


class TestReplaceAll:
    def test_dedupes_and_clamps(self, store: WatchlistStore) -> None:
        store.replace_all(
            [
                Token(id="bitcoin", symbol="btc", name="Bitcoin", holdings=1.0),
                Token(id="bitcoin", symbol="btc", name="Bitcoin", holdings=9.0),
                Token(id="ethereum", symbol="eth", name="Ethereum", holdings=float("nan")),
            ]
        )
        assert store.ids == ("bitcoin", "ethereum")
        assert store.get("bitcoin").holdings == 1.0
        assert store.get("ethereum").holdings == 0.0


class TestSubscribe:
    def test_listener_receives_new_ids(self, store: WatchlistStore) -> None:
        calls: list[tuple[str, ...]] = []
        store.subscribe(calls.append)
        store.add_tokens([BTC])
        store.add_tokens([ETH])
        store.remove_token("bitcoin")
        assert calls == [("bitcoin",), ("bitcoin", "ethereum"), ("ethereum",)]

    def test_unsubscribe(self, store: WatchlistStore) -> None:
        calls: list[tuple[str, ...]] = []
        unsubscribe = store.subscribe(calls.append)
        unsubscribe()
        store.add_tokens([BTC])
        assert calls == []


class TestPersistence:
    def test_survives_restart(self, store: WatchlistStore, store_path: Path) -> None:
        store.add_tokens([BTC, ETH])
        store.set_holdings("bitcoin", 2.0)

        reopened = WatchlistStore(store_path)
        reopened.load()
        assert reopened.ids == ("bitcoin", "ethereum")
        assert reopened.get("bitcoin").holdings == 2.0

    def test_writes_record_under_storage_key(
        self, store: WatchlistStore, store_path: Path
    ) -> None:
        store.add_tokens([BTC])
        document = json.loads(store_path.read_text())
        assert list(document) == ["token_portfolio_watchlist_v1"]
        assert document["token_portfolio_watchlist_v1"]["tokens"][0] == {
            "id": "bitcoin",
            "symbol": "btc",
            "name": "Bitcoin",
            "image": "https://img/btc.png",
            "holdings": 0.0,
        }

    def test_missing_file_loads_empty(self, tmp_path: Path) -> None:
        s = WatchlistStore(tmp_path / "absent.json")
        assert s.load().tokens == ()

    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            "[1, 2, 3]",
            "null",
            '{"token_portfolio_watchlist_v1": null}',
            '{"token_portfolio_watchlist_v1": "oops"}',
            '{"token_portfolio_watchlist_v1": {"tokens": {"id": "x"}}}',
            '{"token_portfolio_watchlist_v1": {"tokens": [{"symbol": "no-id"}]}}',
        ],
    )
    def test_corrupt_data_resets_to_empty_and_logs(
        self, store_path: Path, content: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        store_path.write_text(content)
        s = WatchlistStore(store_path)
        with caplog.at_level(logging.ERROR):
            state = s.load()
        assert state.tokens == ()
        assert "load watchlist failed" in caplog.text

    def test_duplicate_ids_on_disk_are_collapsed(self, store_path: Path) -> None:
        record = {"tokens": [{"id": "bitcoin"}, {"id": "bitcoin", "holdings": 3}]}
        store_path.write_text(json.dumps({"token_portfolio_watchlist_v1": record}))
        s = WatchlistStore(store_path)
        s.load()
        assert s.ids == ("bitcoin",)

    def test_other_key_is_ignored(self, store_path: Path) -> None:
        store_path.write_text(json.dumps({"other": {"tokens": [{"id": "bitcoin"}]}}))
        s = WatchlistStore(store_path)
        assert s.load().tokens == ()

    def test_write_failure_is_logged_not_raised(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")
        s = WatchlistStore(blocker / "watchlist.json")
        with caplog.at_level(logging.ERROR):
            s.add_tokens([TokenInput(id="bitcoin", symbol="btc", name="Bitcoin")])
        assert s.ids == ("bitcoin",)
        assert "save watchlist failed" in caplog.text
