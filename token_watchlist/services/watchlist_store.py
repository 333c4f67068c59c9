"""Durable watchlist store — JSON-backed token list with holdings."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Iterable

from ..config import DEFAULT_STORAGE_KEY, StorageConfig
from ..models import Token, TokenInput, WatchlistState, parse_holdings

logger = logging.getLogger(__name__)

Listener = Callable[[tuple[str, ...]], None]


class WatchlistStore:
    """Owns the user's tracked tokens.

    Every mutator is synchronous: it updates the in-memory state, writes the
    state to disk, then notifies subscribers with the new id tuple. Ids are
    unique at all times.
    """

    def __init__(self, path: str | Path, key: str = DEFAULT_STORAGE_KEY) -> None:
        self.path = Path(path)
        self.key = key
        self._state = WatchlistState()
        self._listeners: list[Listener] = []

    @classmethod
    def from_config(cls, config: StorageConfig) -> WatchlistStore:
        return cls(config.path, config.key)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> WatchlistState:
        return self._state

    @property
    def tokens(self) -> tuple[Token, ...]:
        return self._state.tokens

    @property
    def ids(self) -> tuple[str, ...]:
        return self._state.ids

    def get(self, token_id: str) -> Token | None:
        for token in self._state.tokens:
            if token.id == token_id:
                return token
        return None

    def __contains__(self, token_id: object) -> bool:
        return any(t.id == token_id for t in self._state.tokens)

    def __len__(self) -> int:
        return len(self._state.tokens)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for post-mutation notifications.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, tokens: tuple[Token, ...]) -> None:
        self._state = WatchlistState(tokens=tokens)
        self.save()
        ids = self._state.ids
        for listener in list(self._listeners):
            listener(ids)

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def add_tokens(self, candidates: Iterable[TokenInput]) -> tuple[Token, ...]:
        """Append candidates not already tracked, each with zero holdings.

        Returns the tokens actually added. Nothing is written when every
        candidate is already present.
        """
        seen = set(self.ids)
        added: list[Token] = []
        for candidate in candidates:
            if candidate.id in seen:
                continue
            seen.add(candidate.id)
            added.append(
                Token(
                    id=candidate.id,
                    symbol=candidate.symbol,
                    name=candidate.name,
                    image=candidate.image,
                    holdings=0.0,
                )
            )

        if not added:
            logger.debug("add_tokens: all candidates already tracked")
            return ()

        self._commit(self._state.tokens + tuple(added))
        logger.info("Added %d token(s): %s", len(added), ", ".join(t.id for t in added))
        return tuple(added)

    def remove_token(self, token_id: str) -> None:
        """Remove ``token_id``; unknown ids are ignored."""
        remaining = tuple(t for t in self._state.tokens if t.id != token_id)
        if len(remaining) == len(self._state.tokens):
            return
        self._commit(remaining)
        logger.info("Removed token %s", token_id)

    def set_holdings(self, token_id: str, value: float) -> None:
        """Set holdings for ``token_id``; unknown ids are ignored.

        Callers clamp user input with :func:`parse_holdings` first.
        """
        if token_id not in self:
            return
        self._commit(
            tuple(
                replace(t, holdings=value) if t.id == token_id else t
                for t in self._state.tokens
            )
        )
        logger.info("Holdings for %s set to %s", token_id, value)

    def replace_all(self, tokens: Iterable[Token]) -> None:
        """Replace the whole watchlist. Duplicate ids keep the first entry."""
        seen: set[str] = set()
        unique: list[Token] = []
        for token in tokens:
            if token.id in seen:
                continue
            seen.add(token.id)
            unique.append(replace(token, holdings=parse_holdings(token.holdings)))
        self._commit(tuple(unique))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> WatchlistState:
        """Read durable state. Any failure resets to an empty watchlist."""
        try:
            self._state = self._read()
        except Exception as e:
            logger.error("load watchlist failed, starting empty: %s", e)
            self._state = WatchlistState()
        logger.info("Loaded %d token(s) from %s", len(self._state.tokens), self.path)
        return self._state

    def _read(self) -> WatchlistState:
        if not self.path.exists():
            return WatchlistState()

        with open(self.path, encoding="utf-8") as f:
            document = json.load(f)

        if not isinstance(document, dict):
            raise ValueError(f"expected a JSON object, got {type(document).__name__}")
        if self.key not in document:
            return WatchlistState()

        record: Any = document[self.key]
        if not isinstance(record, dict) or not isinstance(record.get("tokens"), list):
            raise ValueError(f"malformed record under key '{self.key}'")

        tokens: list[Token] = []
        seen: set[str] = set()
        for raw in record["tokens"]:
            if not isinstance(raw, dict):
                raise ValueError(f"malformed token entry: {raw!r}")
            token = Token.from_dict(raw)
            if token.id not in seen:
                seen.add(token.id)
                tokens.append(token)
        return WatchlistState(tokens=tuple(tokens))

    def save(self) -> None:
        """Write current state. Failures are logged, never raised."""
        document = {self.key: {"tokens": [t.to_dict() for t in self._state.tokens]}}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error("save watchlist failed: %s", e)
