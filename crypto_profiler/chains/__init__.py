"""On-chain data providers. Strategies are tried in order: EVM, Bitcoin, Solana."""

from __future__ import annotations

from typing import Sequence

from crypto_profiler.analysis_engine.models import WalletProfile
from crypto_profiler.chains.base import ChainState, ChainStrategy, Deadline, request_json
from crypto_profiler.chains.bitcoin import BitcoinStrategy
from crypto_profiler.chains.evm import EvmStrategy
from crypto_profiler.chains.solana import SolanaStrategy
from crypto_profiler.config.settings import Settings

UNKNOWN_NETWORK = "UNKNOWN"
NO_STRATEGY_DETAILS = "Invalid Format or No Matching Chain Strategy"


def build_strategies(settings: Settings) -> list[ChainStrategy]:
    return [
        EvmStrategy(settings.etherscan_api_key),
        BitcoinStrategy(settings.bitcoin_api_url),
        SolanaStrategy(settings.coinstats_api_key),
    ]


def detect_strategy(address: str, strategies: Sequence[ChainStrategy]) -> ChainStrategy | None:
    """First strategy whose syntax check accepts the address, or None."""
    for strategy in strategies:
        if strategy.is_valid_syntax(address):
            return strategy
    return None


def unknown_profile(address: str) -> WalletProfile:
    return WalletProfile(
        address=address.strip(),
        network=UNKNOWN_NETWORK,
        is_valid=False,
        validation_details=NO_STRATEGY_DETAILS,
    )


__all__ = [
    "BitcoinStrategy",
    "ChainState",
    "ChainStrategy",
    "Deadline",
    "EvmStrategy",
    "NO_STRATEGY_DETAILS",
    "SolanaStrategy",
    "UNKNOWN_NETWORK",
    "build_strategies",
    "detect_strategy",
    "request_json",
    "unknown_profile",
]
