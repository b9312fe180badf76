"""
Sanctions lookup: "is this address sanctioned?"

LookupService answers from the local store (used by the HTTP API).
WatchlistClient asks a running engine over HTTP (used by the investigator).
Both satisfy SanctionsLookup, so the investigator does not care which one it gets.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from crypto_profiler.core.exceptions import WatchlistUnavailable
from crypto_profiler.database import Database
from crypto_profiler.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LOOKUP_TIMEOUT_SEC = 2.0


@dataclass(frozen=True)
class CheckResult:
    """Lookup answer. currency/source are set only on a hit."""

    sanctioned: bool
    currency: str | None = None
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"sanctioned": self.sanctioned}
        if self.sanctioned:
            out["currency"] = self.currency
            out["source"] = self.source
        return out


class SanctionsLookup(Protocol):
    def check(self, address: str) -> CheckResult:
        """Raise WatchlistUnavailable when no answer can be given."""
        ...


class LookupService:
    """Exact, case-sensitive lookup against the sanction store. Absence is not an error."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def check(self, address: str) -> CheckResult:
        try:
            entry = self._db.get(address)
        except sqlite3.Error as e:
            raise WatchlistUnavailable(f"sanction store unavailable: {e}") from e
        if entry is None:
            return CheckResult(sanctioned=False)
        return CheckResult(sanctioned=True, currency=entry.currency, source=entry.source)


class WatchlistClient:
    """
    HTTP client for GET {base_url}/check?address=...

    Short timeout so a slow or unreachable engine cannot eat the caller's
    own request budget.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_sec: float = DEFAULT_LOOKUP_TIMEOUT_SEC,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self._http = session or requests.Session()

    def check(self, address: str) -> CheckResult:
        url = f"{self.base_url}/check"
        try:
            r = self._http.get(url, params={"address": address}, timeout=self.timeout_sec)
        except requests.RequestException as e:
            logger.warning("watchlist_client_unreachable", url=url, error=str(e))
            raise WatchlistUnavailable(f"watchlist engine unreachable: {e}") from e
        if r.status_code != 200:
            logger.warning("watchlist_client_bad_status", url=url, status_code=r.status_code)
            raise WatchlistUnavailable(f"watchlist engine returned HTTP {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise WatchlistUnavailable("watchlist engine returned invalid JSON") from e
        if not isinstance(data, dict):
            raise WatchlistUnavailable("watchlist engine returned unexpected body")
        sanctioned = data.get("sanctioned") is True
        return CheckResult(
            sanctioned=sanctioned,
            currency=data.get("currency") if sanctioned else None,
            source=data.get("source") if sanctioned else None,
        )
