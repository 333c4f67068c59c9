"""Debounced token discovery against the price source."""
from __future__ import annotations

import asyncio
import logging

from ..interfaces.price_source import PriceSource
from ..models import SearchResult, Token
from .watchlist_store import WatchlistStore

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3


class DiscoverySearch:
    """One "add tokens" interaction: query, candidates and selection.

    ``set_query`` restarts a cancellable timer on every call, so a remote
    search is only issued once the text has been quiet for the debounce
    period. Each search carries a generation number and only the latest one
    is allowed to write ``results``.
    """

    def __init__(
        self,
        source: PriceSource,
        store: WatchlistStore,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self._source = source
        self._store = store
        self._debounce = debounce_seconds

        self.query_text = ""
        self.debounced_query = ""
        self.results: list[SearchResult] = []
        self.trending: list[SearchResult] = []
        self.selected: set[str] = set()
        self.error: str | None = None
        self.is_open = False

        self._timer: asyncio.TimerHandle | None = None
        self._search_generation = 0
        self._trending_generation = 0
        self._pending = 0
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Open the interaction and load trending tokens."""
        self.is_open = True
        await self.load_trending()

    def cancel(self) -> None:
        """Close without adding anything."""
        self._reset()
        self.is_open = False

    def _reset(self) -> None:
        self._cancel_timer()
        self._search_generation += 1
        self.query_text = ""
        self.debounced_query = ""
        self.results = []
        self.selected = set()

    @property
    def loading(self) -> bool:
        return self._pending > 0

    @property
    def display_tokens(self) -> list[SearchResult]:
        return self.results if self.query_text.strip() else self.trending

    # ------------------------------------------------------------------
    # Trending
    # ------------------------------------------------------------------

    async def load_trending(self) -> None:
        self._trending_generation += 1
        generation = self._trending_generation
        self.error = None
        self._pending += 1
        try:
            trending = await self._source.trending()
        except Exception as e:
            logger.error("Error loading trending: %s", e)
            if generation == self._trending_generation:
                self.error = "Failed to load trending tokens"
            return
        finally:
            self._pending -= 1

        if generation == self._trending_generation:
            self.trending = trending

    # ------------------------------------------------------------------
    # Debounced search
    # ------------------------------------------------------------------

    def set_query(self, text: str) -> None:
        """Update the query text and restart the debounce timer."""
        self.query_text = text
        self._cancel_timer()

        if not text.strip():
            # Blank query shows trending; drop any search still in flight.
            self._search_generation += 1
            self.debounced_query = ""
            self.results = []
            if not self.trending:
                task = asyncio.get_running_loop().create_task(self.load_trending())
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._debounce, self._fire, text)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, query: str) -> None:
        self._timer = None
        self.debounced_query = query
        self._search_generation += 1
        self.error = None
        task = asyncio.get_running_loop().create_task(
            self._search(self._search_generation, query)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _search(self, generation: int, query: str) -> None:
        logger.debug("Searching tokens for '%s' (generation %d)", query, generation)
        self._pending += 1
        try:
            results = await self._source.search(query)
        except Exception as e:
            logger.error("Error searching tokens: %s", e)
            if generation == self._search_generation:
                self.error = "Failed to search tokens"
                self.results = []
            return
        finally:
            self._pending -= 1

        if generation != self._search_generation:
            logger.debug("Discarding stale search results for '%s'", query)
            return
        self.results = results

    async def settle(self) -> None:
        """Wait for the pending debounce timer and any in-flight query."""
        loop = asyncio.get_running_loop()
        while self._timer is not None or self._tasks:
            if self._timer is not None:
                await asyncio.sleep(max(0.0, self._timer.when() - loop.time()))
            else:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def is_already_added(self, token_id: str) -> bool:
        return token_id in self._store

    def is_selected(self, token_id: str) -> bool:
        return token_id in self.selected

    def toggle(self, token_id: str) -> bool:
        """Toggle selection of ``token_id``.

        Returns False, leaving the selection untouched, for tokens already
        in the watchlist.
        """
        if self.is_already_added(token_id):
            return False
        if token_id in self.selected:
            self.selected.discard(token_id)
        else:
            self.selected.add(token_id)
        return True

    def confirm(self) -> tuple[Token, ...]:
        """Add the selected candidates to the watchlist and close.

        With nothing eligible to add, the session is left open and untouched.
        """
        existing = set(self._store.ids)
        picked: dict[str, SearchResult] = {}
        for candidate in [*self.results, *self.trending]:
            if (
                candidate.id in self.selected
                and candidate.id not in existing
                and candidate.id not in picked
            ):
                picked[candidate.id] = candidate

        if not picked:
            logger.debug("Nothing selected to add, keeping discovery open")
            return ()

        added = self._store.add_tokens(c.to_token_input() for c in picked.values())
        self._reset()
        self.is_open = False
        return added
