"""
EVM (Ethereum mainnet) strategy backed by the Etherscan v2 API.

Two calls: account balance, then the full ascending tx list. The tx list gives
tx_count, first/last seen and the transactions handed to the investigator.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import requests

from crypto_profiler.analysis_engine.models import Transaction, WalletProfile
from crypto_profiler.chains.base import ChainState, Deadline, request_json
from crypto_profiler.core.exceptions import ChainFetchError
from crypto_profiler.logging import get_logger

logger = get_logger(__name__)

ETHERSCAN_URL = "https://api.etherscan.io/v2/api"
CHAIN_ID = "1"
REQUEST_TIMEOUT = 10.0
WEI_PER_ETH = Decimal(10) ** 18
EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def _ts(raw: Any) -> datetime | None:
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


class EvmStrategy:
    name = "EVM (Etherscan)"
    network = "EVM"

    def __init__(
        self,
        api_key: str = "",
        *,
        base_url: str = ETHERSCAN_URL,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self._http = session or requests.Session()

    def is_valid_syntax(self, address: str) -> bool:
        return bool(EVM_ADDRESS_RE.match(address.strip()))

    def _call(self, params: dict[str, str], deadline: Deadline | None) -> dict[str, Any]:
        timeout = deadline.timeout(REQUEST_TIMEOUT) if deadline else REQUEST_TIMEOUT
        query = {"chainid": CHAIN_ID, **params, "apikey": self.api_key}
        data = request_json(self._http, "GET", self.base_url, params=query, timeout=timeout)
        if not isinstance(data, dict):
            raise ChainFetchError("bad response format")
        return data

    def fetch_state(self, address: str, *, deadline: Deadline | None = None) -> ChainState:
        addr = address.strip()
        profile = WalletProfile(address=addr, network=self.network, is_valid=True)
        if not self.api_key:
            profile.validation_details = "Offline: No Etherscan API Key provided"
            return profile, []

        try:
            bal = self._call(
                {"module": "account", "action": "balance", "address": addr, "tag": "latest"},
                deadline,
            )
        except ChainFetchError as e:
            profile.validation_details = f"Network Error (Balance): {e}"
            return profile, []
        if bal.get("status") == "0" and bal.get("message") != "OK":
            profile.validation_details = f"Etherscan API Error: {bal.get('result')}"
            return profile, []

        raw_balance = str(bal.get("result") or "0")
        try:
            wei = Decimal(raw_balance)
        except InvalidOperation:
            wei = Decimal(0)
        profile.balance = f"{wei / WEI_PER_ETH:.4f} ETH"
        if raw_balance != "0":
            profile.is_active = True

        try:
            txr = self._call(
                {
                    "module": "account",
                    "action": "txlist",
                    "address": addr,
                    "startblock": "0",
                    "endblock": "99999999",
                    "sort": "asc",
                },
                deadline,
            )
        except ChainFetchError as e:
            profile.validation_details += f" | History Fetch Failed: {e}"
            return profile, []

        if txr.get("status") == "0":
            if txr.get("message") == "No transactions found":
                if not profile.is_active:
                    profile.validation_details = "Inactive Account (No Tx History)"
            else:
                profile.validation_details += f" | API Error: {txr.get('message')} - {txr.get('result')}"
            return profile, []

        rows = txr.get("result")
        if not isinstance(rows, list):
            profile.validation_details += " | Error parsing tx list"
            return profile, []

        txs: list[Transaction] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            txs.append(
                Transaction(
                    timestamp=_ts(row.get("timeStamp")),
                    from_address=str(row.get("from") or ""),
                    to_address=str(row.get("to") or ""),
                    value=str(row.get("value") or "0"),
                    hash=str(row.get("hash") or ""),
                )
            )
        if txs:
            profile.is_active = True
            profile.tx_count = len(txs)
            profile.first_seen = txs[0].timestamp
            profile.last_seen = txs[-1].timestamp
            if profile.first_seen is not None:
                profile.validation_details = f"Active | First Seen: {profile.first_seen:%Y-%m-%d}"
            else:
                profile.validation_details = "Active"
        logger.debug("evm_state_fetched", address=addr, tx_count=profile.tx_count)
        return profile, txs
