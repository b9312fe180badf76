"""
Environment variable loading and typed settings.

- DB_PATH: SQLite file for the sanction store (default: watchlist.db)
- WATCHLIST_SYNC_ENABLED: start the refresh loop with the API (default: 1)
- FEED_URL / FEED_SOURCE: remote sanctions document and its issuing authority
- SYNC_INTERVAL_SEC: refresh cadence (default: 12 hours)
- API_HOST / PORT: lookup service bind address
- WATCHLIST_ENGINE_URL / WATCHLIST_TIMEOUT_SEC: lookup client used by the investigator
- ETHERSCAN_API_KEY / COINSTATS_API_KEY / BITCOIN_API_URL: chain data providers
- Loads .env from project root when available; OS environment wins.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is crypto_profiler/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_FEED_URL = "https://www.treasury.gov/ofac/downloads/sanctions/1.0/sdn_advanced.xml"
DEFAULT_FEED_SOURCE = "OFAC"
DEFAULT_DB_PATH = "watchlist.db"
DEFAULT_SYNC_INTERVAL_SEC = 12 * 60 * 60
MIN_SYNC_INTERVAL_SEC = 1.0
DEFAULT_ENGINE_URL = "http://localhost:8080"
DEFAULT_BITCOIN_API_URL = "https://blockchain.info"


def load_env() -> None:
    """Load .env from project root. Safe to call multiple times."""
    load_dotenv(_ENV_PATH, override=False)


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or "").strip() or default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Typed view over the process environment."""

    db_path: Path = Path(DEFAULT_DB_PATH)
    feed_url: str = DEFAULT_FEED_URL
    feed_source: str = DEFAULT_FEED_SOURCE
    sync_interval_sec: float = float(DEFAULT_SYNC_INTERVAL_SEC)
    feed_head_timeout_sec: float = 15.0
    feed_download_timeout_sec: float = 120.0
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    watchlist_engine_url: str = DEFAULT_ENGINE_URL
    watchlist_timeout_sec: float = 2.0
    request_timeout_sec: float = 20.0
    etherscan_api_key: str = ""
    coinstats_api_key: str = ""
    bitcoin_api_url: str = DEFAULT_BITCOIN_API_URL
    currency_types_path: str = ""
    known_threats_path: str = ""
    sync_enabled: bool = True


def get_settings() -> Settings:
    """
    Return the current application settings, read fresh from the environment.

    Invalid numeric values fall back to their defaults; the sync interval is
    floored at one second.
    """
    load_env()
    port = _env_int("PORT", 0) or _env_int("API_PORT", 8080)
    return Settings(
        db_path=Path(_env_str("DB_PATH", DEFAULT_DB_PATH)),
        feed_url=_env_str("FEED_URL", DEFAULT_FEED_URL),
        feed_source=_env_str("FEED_SOURCE", DEFAULT_FEED_SOURCE),
        sync_interval_sec=max(
            MIN_SYNC_INTERVAL_SEC,
            _env_float("SYNC_INTERVAL_SEC", float(DEFAULT_SYNC_INTERVAL_SEC)),
        ),
        feed_head_timeout_sec=_env_float("FEED_HEAD_TIMEOUT_SEC", 15.0),
        feed_download_timeout_sec=_env_float("FEED_DOWNLOAD_TIMEOUT_SEC", 120.0),
        api_host=_env_str("API_HOST", "0.0.0.0"),
        api_port=port,
        watchlist_engine_url=_env_str("WATCHLIST_ENGINE_URL", DEFAULT_ENGINE_URL).rstrip("/"),
        watchlist_timeout_sec=_env_float("WATCHLIST_TIMEOUT_SEC", 2.0),
        request_timeout_sec=_env_float("REQUEST_TIMEOUT_SEC", 20.0),
        etherscan_api_key=_env_str("ETHERSCAN_API_KEY"),
        coinstats_api_key=_env_str("COINSTATS_API_KEY"),
        bitcoin_api_url=_env_str("BITCOIN_API_URL", DEFAULT_BITCOIN_API_URL).rstrip("/"),
        currency_types_path=_env_str("CURRENCY_TYPES_PATH"),
        known_threats_path=_env_str("KNOWN_THREATS_PATH"),
        sync_enabled=_env_str("WATCHLIST_SYNC_ENABLED", "1").lower() not in ("0", "false", "no", "off"),
    )
