"""
Chain strategy contract and shared HTTP helpers.

A strategy recognizes an address format and fetches on-chain state for it.
fetch_state never raises for provider trouble: it returns a degraded profile
whose validation_details says what went wrong. The only exception it lets
through is DeadlineExceeded, so the caller's overall budget is respected.
"""

from __future__ import annotations

import time
from typing import Any, Protocol

import requests

from crypto_profiler.analysis_engine.models import Transaction, WalletProfile
from crypto_profiler.core.exceptions import ChainFetchError, DeadlineExceeded

ChainState = tuple[WalletProfile, list[Transaction]]


class Deadline:
    """Monotonic budget shared by every outbound call of one request."""

    def __init__(self, seconds: float | None) -> None:
        self._expires = None if seconds is None else time.monotonic() + seconds

    def remaining(self) -> float | None:
        if self._expires is None:
            return None
        return self._expires - time.monotonic()

    def timeout(self, default: float) -> float:
        """Per-call timeout: default, capped by what is left. Raises once spent."""
        left = self.remaining()
        if left is None:
            return default
        if left <= 0:
            raise DeadlineExceeded("request deadline exceeded")
        return min(default, left)


class ChainStrategy(Protocol):
    name: str
    network: str

    def is_valid_syntax(self, address: str) -> bool:
        ...

    def fetch_state(self, address: str, *, deadline: Deadline | None = None) -> ChainState:
        ...


def request_json(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float,
    **kwargs: Any,
) -> Any:
    """
    Perform one HTTP call and decode JSON.

    Raises ChainFetchError for connection errors, HTTP >= 400 and bad JSON.
    """
    try:
        r = session.request(method, url, timeout=timeout, **kwargs)
    except requests.RequestException as e:
        raise ChainFetchError(f"connection failed: {e}") from e
    if r.status_code >= 400:
        raise ChainFetchError(f"HTTP {r.status_code}")
    try:
        return r.json()
    except ValueError as e:
        raise ChainFetchError("bad response format") from e
