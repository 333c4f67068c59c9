"""Watchlist orchestration — wires store, price cache, discovery and notifiers."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..config import AppConfig
from ..formatting import format_currency, format_percentage, format_price, format_time
from ..interfaces.notifier import Notifier
from ..interfaces.price_source import PriceSource
from ..models import PortfolioSummary, RowPage, parse_holdings
from ..notifications import LogNotifier, TelegramNotifier
from ..sources import CoinGeckoSource
from .aggregator import aggregate
from .discovery import DiscoverySearch
from .price_cache import PriceCache
from .row_projector import Pagination
from .watchlist_store import WatchlistStore

logger = logging.getLogger(__name__)


class Tracker:
    """Owns one watchlist session: durable store, live prices and views."""

    def __init__(
        self,
        config: AppConfig,
        store: WatchlistStore | None = None,
        source: PriceSource | None = None,
    ) -> None:
        self._config = config
        self.store = store or WatchlistStore.from_config(config.storage)
        self.source: PriceSource = source or CoinGeckoSource(config.price_source)

        # Build notifiers
        self._notifiers: list[Notifier] = [LogNotifier()]
        if config.notifications.telegram.enabled:
            self._notifiers.append(TelegramNotifier(config.notifications.telegram))

        self.prices = PriceCache(self.source, self.store, self._notifiers)
        self.pagination = Pagination(config.watchlist.page_size)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, follow_prices: bool = True) -> None:
        """Load the watchlist and, optionally, start syncing prices."""
        self.store.load()
        if follow_prices:
            self.prices.attach()

    def stop(self) -> None:
        self.prices.detach()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def summary(self) -> PortfolioSummary:
        return aggregate(self.store.tokens, self.prices.snapshots)

    def page(self, number: int | None = None) -> RowPage:
        self.pagination.observe(len(self.store))
        if number is not None:
            self.pagination.go_to(number)
        return self.pagination.project(self.store.tokens, self.prices.snapshots)

    def discovery(self) -> DiscoverySearch:
        return DiscoverySearch(
            self.source,
            self.store,
            debounce_seconds=self._config.discovery.debounce_ms / 1000,
        )

    def update_holdings(self, token_id: str, raw: Any) -> float:
        """Clamp user input and store it. Returns the stored value."""
        value = parse_holdings(raw)
        self.store.set_holdings(token_id, value)
        return value

    def render_report(self, page: int | None = None) -> str:
        summary = self.summary()
        rows = self.page(page)
        updated = self.prices.last_updated

        lines = [
            f"Portfolio Total: {format_currency(summary.total_value)}",
            f"Last updated: {format_time(updated.astimezone()) if updated else 'never'}",
        ]
        if self.prices.error:
            lines.append(f"Price error: {self.prices.error}")

        if summary.breakdown:
            lines.append("")
            for item in summary.breakdown:
                lines.append(
                    f"  {item.symbol:<8} {format_currency(item.value):>16} "
                    f"{item.percentage:6.2f}%"
                )

        lines.append("")
        lines.append(f"Watchlist (page {rows.page} of {rows.total_pages})")
        if not rows.rows:
            lines.append("  No tokens in watchlist. Add some to get started.")
        for row in rows.rows:
            lines.append(
                f"  {row.name} ({row.symbol.upper()})  {format_price(row.current_price)}  "
                f"{format_percentage(row.change_24h_pct)}  "
                f"holdings {row.holdings:g}  value {format_currency(row.value)}"
            )
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def _send_log(self, message: str, silent: bool = True) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=silent)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    # ------------------------------------------------------------------
    # Core workflows
    # ------------------------------------------------------------------

    async def refresh_and_report(self) -> str:
        await self.prices.refresh()
        report = self.render_report()
        if not self.prices.error:
            await self._send_log(report)
        return report

    async def run_continuous(self, interval_seconds: int | None = None) -> None:
        """Refresh prices periodically until cancelled."""
        interval = interval_seconds or self._config.watchlist.refresh_interval_seconds
        logger.info("Starting price refresh loop (every %d seconds)", interval)

        while True:
            try:
                await self.refresh_and_report()
                # follow watchlist changes once the first refresh has been issued
                self.prices.attach()
                await asyncio.sleep(interval)
            except Exception as e:
                logger.error("Error in refresh loop: %s", e)
                await asyncio.sleep(interval)
