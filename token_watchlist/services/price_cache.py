"""Price cache kept in sync with the watchlist's id set."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from ..interfaces.notifier import Notifier
from ..interfaces.price_source import PriceSource
from ..models import PriceSnapshot
from .watchlist_store import WatchlistStore

logger = logging.getLogger(__name__)


class PriceCache:
    """In-memory price snapshots for the tokens currently in the watchlist.

    Each fetch is tagged with a monotonically increasing generation. A result
    is only committed if no newer fetch has been issued since; late responses
    are dropped rather than aborted.

    Attributes:
        snapshots: token id -> latest committed :class:`PriceSnapshot`.
        loading: true while the most recently issued fetch is in flight.
        error: message of the last failed fetch, cleared on success.
        last_refresh_key: id set of the last committed fetch.
        last_updated: UTC time of the last committed fetch.
    """

    def __init__(
        self,
        source: PriceSource,
        store: WatchlistStore,
        notifiers: list[Notifier] | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._notifiers: list[Notifier] = list(notifiers or [])

        self.snapshots: dict[str, PriceSnapshot] = {}
        self.loading = False
        self.error: str | None = None
        self.last_refresh_key: frozenset[str] = frozenset()
        self.last_updated: datetime | None = None

        self._generation = 0
        self._issued_key: frozenset[str] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._unsubscribe: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def attach(self) -> None:
        """Follow watchlist changes and sync immediately."""
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(lambda _ids: self.sync())
        self.sync()

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def requested_key(self) -> frozenset[str]:
        return frozenset(self._store.ids)

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self) -> bool:
        """True when the committed snapshots cover the present watchlist."""
        return self.last_refresh_key == self.requested_key

    def snapshot_for(self, token_id: str) -> PriceSnapshot | None:
        return self.snapshots.get(token_id)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def sync(self) -> asyncio.Task[None] | None:
        """Issue a fetch if the watchlist id set changed since the last one."""
        if self.requested_key == self._issued_key:
            return None
        return self._issue()

    async def refresh(self) -> None:
        """Fetch prices for the current watchlist now, regardless of cache state."""
        task = self._issue()
        if task is not None:
            await task

    async def settle(self) -> None:
        """Wait until every in-flight fetch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _issue(self) -> asyncio.Task[None] | None:
        ids = self._store.ids
        key = frozenset(ids)

        if not key:
            self._generation += 1
            self._issued_key = key
            self.snapshots = {}
            self.error = None
            self.loading = False
            self.last_refresh_key = key
            logger.debug("Watchlist empty, price cache cleared")
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Picked up by the next sync() once an event loop is running.
            logger.debug("No running event loop, deferring price fetch")
            return None

        self._generation += 1
        self._issued_key = key
        self.loading = True
        task = loop.create_task(self._fetch(self._generation, ids))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def _fetch(self, generation: int, ids: tuple[str, ...]) -> None:
        logger.debug("Fetching prices for %d token(s) (generation %d)", len(ids), generation)
        try:
            result = await self._source.batch_prices(list(ids))
        except Exception as e:
            if generation != self._generation:
                logger.debug("Discarding failure of superseded fetch %d: %s", generation, e)
                return
            message = str(e) or "Failed to fetch prices"
            self.error = message
            self.loading = False
            logger.error("Price refresh failed, keeping %d stale snapshot(s): %s",
                         len(self.snapshots), message)
            await self._send_alert(
                f"Error: {message}. Please try after sometime.",
                subject="Price refresh failed",
            )
            return

        if generation != self._generation:
            logger.debug("Discarding superseded price result (generation %d < %d)",
                         generation, self._generation)
            return

        self.snapshots = {snap.id: snap for snap in result}
        self.error = None
        self.loading = False
        self.last_refresh_key = frozenset(ids)
        self.last_updated = datetime.now(timezone.utc)
        logger.info("Price cache updated: %d snapshot(s)", len(self.snapshots))

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)
