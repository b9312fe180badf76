"""
Reference tables loaded at startup instead of compiled in.

currency_types.json: feed feature-type identifier -> currency ticker (parser seed).
known_threats.json: illicit-service address -> label (investigator interaction check).

Both ship under crypto_profiler/data/ and can be replaced via CURRENCY_TYPES_PATH /
KNOWN_THREATS_PATH. A bad override never aborts startup.
"""

from __future__ import annotations

import json
from pathlib import Path

from crypto_profiler.logging import get_logger

logger = get_logger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEFAULT_CURRENCY_TYPES_PATH = DATA_DIR / "currency_types.json"
DEFAULT_KNOWN_THREATS_PATH = DATA_DIR / "known_threats.json"


def _load_mapping(path: Path) -> dict[str, str] | None:
    """Read a flat JSON object of strings. None if missing or malformed."""
    if not path.is_file():
        logger.warning("reference_table_missing", path=str(path))
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("reference_table_load_failed", path=str(path), error=str(e))
        return None
    if not isinstance(data, dict):
        logger.warning("reference_table_not_object", path=str(path))
        return None
    return {str(k).strip(): str(v).strip() for k, v in data.items() if k and v}


def load_currency_types(path: str | Path | None = None) -> dict[str, str]:
    """
    Return the static CurrencyTypeMap seed.

    An unreadable override falls back to the bundled table.
    """
    if path:
        loaded = _load_mapping(Path(path))
        if loaded is not None:
            return loaded
    return _load_mapping(DEFAULT_CURRENCY_TYPES_PATH) or {}


def load_known_threats(path: str | Path | None = None) -> dict[str, str]:
    """
    Return known illicit-service addresses (lower-cased) mapped to labels.

    An unreadable override yields an empty table, not the bundled one.
    """
    loaded = _load_mapping(Path(path) if path else DEFAULT_KNOWN_THREATS_PATH)
    if loaded is None:
        return {}
    return {addr.lower(): label for addr, label in loaded.items()}
