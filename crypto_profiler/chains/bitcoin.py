"""
Bitcoin strategy backed by the blockchain.info rawaddr endpoint (no API key).

rawaddr returns newest-first and at most 50 txs, so first_seen is the oldest
tx in that page, not necessarily the wallet's very first activity.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

import requests

from crypto_profiler.analysis_engine.models import WalletProfile
from crypto_profiler.chains.base import ChainState, Deadline, request_json
from crypto_profiler.config.settings import DEFAULT_BITCOIN_API_URL
from crypto_profiler.core.exceptions import ChainFetchError
from crypto_profiler.logging import get_logger

logger = get_logger(__name__)

REQUEST_TIMEOUT = 10.0
SATS_PER_BTC = 100_000_000

LEGACY_RE = re.compile(r"^1[a-km-zA-HJ-NP-Z1-9]{25,34}$")
SCRIPT_RE = re.compile(r"^3[a-km-zA-HJ-NP-Z1-9]{25,34}$")
BECH32_RE = re.compile(r"^bc1[a-z0-9]{25,87}$", re.IGNORECASE)


class BitcoinStrategy:
    name = "BITCOIN"
    network = "BITCOIN"

    def __init__(
        self,
        base_url: str = DEFAULT_BITCOIN_API_URL,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = session or requests.Session()

    def is_valid_syntax(self, address: str) -> bool:
        addr = address.strip()
        return bool(LEGACY_RE.match(addr) or SCRIPT_RE.match(addr) or BECH32_RE.match(addr))

    def fetch_state(self, address: str, *, deadline: Deadline | None = None) -> ChainState:
        addr = address.strip()
        profile = WalletProfile(address=addr, network=self.network, is_valid=True)
        timeout = deadline.timeout(REQUEST_TIMEOUT) if deadline else REQUEST_TIMEOUT
        try:
            data = request_json(self._http, "GET", f"{self.base_url}/rawaddr/{addr}", timeout=timeout)
        except ChainFetchError as e:
            profile.validation_details = f"Blockchain.com Error: {e}"
            return profile, []
        if not isinstance(data, dict):
            profile.validation_details = "Blockchain.com Error: bad response format"
            return profile, []

        try:
            sats = int(data.get("final_balance") or 0)
            n_tx = int(data.get("n_tx") or 0)
        except (TypeError, ValueError):
            profile.validation_details = "Blockchain.com Error: bad response format"
            return profile, []
        profile.balance = f"{sats / SATS_PER_BTC:.8f} BTC"
        profile.tx_count = n_tx

        if n_tx <= 0:
            profile.is_active = False
            profile.validation_details = "Inactive Account (Zero Transactions)"
            return profile, []

        profile.is_active = True
        profile.validation_details = "Active Account (History Found)"
        times: list[datetime] = []
        for tx in data.get("txs") or []:
            try:
                times.append(datetime.fromtimestamp(int(tx["time"]), tz=timezone.utc))
            except (KeyError, TypeError, ValueError, OverflowError):
                continue
        if times:
            profile.last_seen = times[0]
            profile.first_seen = times[-1]
            profile.validation_details += f" | Last Active: {profile.last_seen:%Y-%m-%d}"
        logger.debug("bitcoin_state_fetched", address=addr, tx_count=n_tx)
        return profile, []
