"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "token_portfolio_watchlist_v1"

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StorageConfig:
    path: str = "watchlist.json"
    key: str = DEFAULT_STORAGE_KEY


@dataclass(frozen=True)
class PriceSourceConfig:
    base_url: str = "https://api.coingecko.com/api/v3"
    vs_currency: str = "usd"
    timeout: int = 10


@dataclass(frozen=True)
class DiscoveryConfig:
    debounce_ms: int = 300


@dataclass(frozen=True)
class WatchlistConfig:
    page_size: int = 10
    refresh_interval_seconds: int = 60


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    price_source: PriceSourceConfig = field(default_factory=PriceSourceConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    watchlist: WatchlistConfig = field(default_factory=WatchlistConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_storage(raw: dict[str, Any]) -> StorageConfig:
    return StorageConfig(
        path=str(raw.get("path", StorageConfig.path)),
        key=str(raw.get("key", DEFAULT_STORAGE_KEY)),
    )


def _build_price_source(raw: dict[str, Any]) -> PriceSourceConfig:
    return PriceSourceConfig(
        base_url=str(raw.get("base_url", PriceSourceConfig.base_url)).rstrip("/"),
        vs_currency=str(raw.get("vs_currency", "usd")).lower(),
        timeout=int(raw.get("timeout", 10)),
    )


def _build_discovery(raw: dict[str, Any]) -> DiscoveryConfig:
    return DiscoveryConfig(debounce_ms=int(raw.get("debounce_ms", 300)))


def _build_watchlist(raw: dict[str, Any]) -> WatchlistConfig:
    return WatchlistConfig(
        page_size=int(raw.get("page_size", 10)),
        refresh_interval_seconds=int(raw.get("refresh_interval_seconds", 60)),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        storage=_build_storage(raw.get("storage") or {}),
        price_source=_build_price_source(raw.get("price_source") or {}),
        discovery=_build_discovery(raw.get("discovery") or {}),
        watchlist=_build_watchlist(raw.get("watchlist") or {}),
        notifications=_build_notifications(raw.get("notifications") or {}),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.storage.path:
        raise ValueError("Storage path must not be empty")
    if not cfg.storage.key:
        raise ValueError("Storage key must not be empty")
    if not cfg.price_source.base_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Price source base_url '{cfg.price_source.base_url}' is not an HTTP URL"
        )
    if cfg.price_source.timeout <= 0:
        raise ValueError("Price source timeout must be positive")
    if cfg.discovery.debounce_ms < 0:
        raise ValueError("Discovery debounce_ms must not be negative")
    if cfg.watchlist.page_size < 1:
        raise ValueError("Watchlist page_size must be at least 1")
    if cfg.watchlist.refresh_interval_seconds < 1:
        raise ValueError("Watchlist refresh_interval_seconds must be at least 1")

    tg = cfg.notifications.telegram
    if tg.enabled and not tg.chat_id:
        raise ValueError("Telegram notifications enabled but no chat_id configured")
