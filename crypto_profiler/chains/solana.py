"""
Solana strategy backed by the CoinStats public wallet API.

CoinStats indexes history lazily: a PATCH on /transactions asks it to sync,
and the following GET may still be empty for a while. The GET is retried a
few times before the profile is returned with a "sync pending" note.
"""

from __future__ import annotations

import re
import time
from datetime import datetime
from typing import Any, Callable

import requests
from solders.pubkey import Pubkey

from crypto_profiler.analysis_engine.models import WalletProfile
from crypto_profiler.chains.base import ChainState, Deadline, request_json
from crypto_profiler.core.exceptions import ChainFetchError
from crypto_profiler.logging import get_logger

logger = get_logger(__name__)

COINSTATS_URL = "https://openapiv1.coinstats.app/wallet"
CONNECTION_ID = "solana"
REQUEST_TIMEOUT = 10.0
HISTORY_LIMIT = 50
HISTORY_ATTEMPTS = 3
RETRY_DELAY_SEC = 2.0
SOLANA_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def _parse_date(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


class SolanaStrategy:
    name = "SOLANA (CoinStats)"
    network = "SOLANA"

    def __init__(
        self,
        api_key: str = "",
        *,
        base_url: str = COINSTATS_URL,
        session: requests.Session | None = None,
        retry_delay_sec: float = RETRY_DELAY_SEC,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.retry_delay_sec = retry_delay_sec
        self._http = session or requests.Session()
        self._sleep = sleep

    def is_valid_syntax(self, address: str) -> bool:
        addr = address.strip()
        if not SOLANA_ADDRESS_RE.match(addr):
            return False
        try:
            Pubkey.from_string(addr)
            return True
        except Exception:
            return False

    def _call(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None,
        deadline: Deadline | None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        timeout = deadline.timeout(REQUEST_TIMEOUT) if deadline else REQUEST_TIMEOUT
        return request_json(
            self._http,
            method,
            f"{self.base_url}{path}",
            params=params,
            json=body,
            headers={"X-API-KEY": self.api_key, "accept": "application/json"},
            timeout=timeout,
        )

    def _trigger_sync(self, addr: str, deadline: Deadline | None) -> None:
        try:
            body = {"wallets": [{"address": addr, "connectionId": CONNECTION_ID}]}
            self._call("PATCH", "/transactions", None, deadline, body)
        except ChainFetchError as e:
            logger.debug("solana_sync_trigger_failed", address=addr, error=str(e))

    def _fetch_history(self, addr: str, deadline: Deadline | None) -> dict[str, Any] | None:
        params = {"address": addr, "connectionId": CONNECTION_ID, "limit": HISTORY_LIMIT}
        for attempt in range(1, HISTORY_ATTEMPTS + 1):
            try:
                data = self._call("GET", "/transactions", params, deadline)
                if isinstance(data, dict):
                    return data
            except ChainFetchError as e:
                logger.debug("solana_history_retry", address=addr, attempt=attempt, error=str(e))
            if attempt < HISTORY_ATTEMPTS:
                left = deadline.remaining() if deadline else None
                if left is not None and left <= self.retry_delay_sec:
                    break
                self._sleep(self.retry_delay_sec)
        return None

    def fetch_state(self, address: str, *, deadline: Deadline | None = None) -> ChainState:
        addr = address.strip()
        profile = WalletProfile(address=addr, network=self.network, is_valid=True)
        if not self.api_key:
            profile.validation_details = "Offline: No CoinStats API Key provided"
            return profile, []

        self._trigger_sync(addr, deadline)

        try:
            balances = self._call("GET", "/balance", {"address": addr, "connectionId": CONNECTION_ID}, deadline)
        except ChainFetchError as e:
            profile.validation_details = f"CoinStats Error: {e}"
            return profile, []

        profile.balance = "0.00000000 SOL"
        for item in balances if isinstance(balances, list) else []:
            if not isinstance(item, dict):
                continue
            if item.get("coinId") == "solana" or item.get("symbol") == "SOL":
                try:
                    amount = float(item.get("amount") or 0)
                except (TypeError, ValueError):
                    continue
                profile.balance = f"{amount:.9f} SOL"
                if amount > 0:
                    profile.is_active = True
                break

        history = self._fetch_history(addr, deadline)
        if history is None:
            profile.validation_details = "Balance Fetched | History Sync Pending (Try again in 1 min)"
            return profile, []

        meta = history.get("meta") if isinstance(history.get("meta"), dict) else {}
        try:
            profile.tx_count = int(meta.get("totalCount") or 0)
        except (TypeError, ValueError):
            profile.tx_count = 0
        dates = [d for d in (_parse_date(r.get("date")) for r in history.get("result") or [] if isinstance(r, dict)) if d]
        if dates:
            profile.is_active = True
            profile.last_seen = max(dates)
            profile.first_seen = min(dates)
            profile.tx_count = max(profile.tx_count, len(dates))
            profile.validation_details = f"Active | Last Seen: {profile.last_seen:%Y-%m-%d}"
        elif profile.is_active:
            profile.validation_details = "Active (Balance Found, History Empty)"
        else:
            profile.validation_details = "Inactive Account (No Tx History)"
        logger.debug("solana_state_fetched", address=addr, tx_count=profile.tx_count)
        return profile, []
