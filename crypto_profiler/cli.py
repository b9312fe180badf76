"""
Command-line entrypoint.

  crypto-profiler serve               run the watchlist engine (HTTP API + refresh loop)
  crypto-profiler refresh             run one feed refresh cycle and exit
  crypto-profiler check <address>     profile and score one address

Configuration comes from the environment (see crypto_profiler.config.settings).
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Sequence

from crypto_profiler.analysis_engine import Investigator, WalletProfile
from crypto_profiler.chains import Deadline, build_strategies, detect_strategy, unknown_profile
from crypto_profiler.chains.base import ChainStrategy
from crypto_profiler.config import Settings, get_settings, load_known_threats
from crypto_profiler.core.exceptions import DeadlineExceeded, StoreInitError
from crypto_profiler.logging import bind_address, get_logger
from crypto_profiler.watchlist.lookup import SanctionsLookup, WatchlistClient

logger = get_logger(__name__)


def profile_address(
    address: str,
    settings: Settings,
    *,
    strategies: Sequence[ChainStrategy] | None = None,
    lookup: SanctionsLookup | None = None,
) -> WalletProfile:
    """
    Detect the chain, fetch its state and score it, all under one deadline.

    Raises DeadlineExceeded when the budget runs out before an outbound call.
    """
    address = address.strip()
    deadline = Deadline(settings.request_timeout_sec)
    strategy = detect_strategy(address, strategies if strategies is not None else build_strategies(settings))
    if strategy is None:
        logger.info("check_no_strategy", address=address)
        return unknown_profile(address)

    logger.info("check_strategy_selected", address=address, strategy=strategy.name)
    profile, transactions = strategy.fetch_state(address, deadline=deadline)

    if lookup is None:
        lookup = WatchlistClient(
            settings.watchlist_engine_url,
            timeout_sec=deadline.timeout(settings.watchlist_timeout_sec),
        )
    investigator = Investigator(lookup, load_known_threats(settings.known_threats_path or None))
    investigator.investigate(profile, transactions)
    return profile


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _cmd_serve(settings: Settings, args: argparse.Namespace) -> int:
    import uvicorn

    from crypto_profiler.api_server.app import app
    from crypto_profiler.database import get_database

    # Fail fast before uvicorn swallows the lifespan error.
    try:
        get_database(settings.db_path)
    except StoreInitError as e:
        logger.error("serve_store_init_failed", db_path=str(settings.db_path), error=str(e))
        return 1
    host = args.host or settings.api_host
    port = args.port or settings.api_port
    logger.info("serve_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port, log_level=(args.log_level or "info").lower())
    return 0


def _cmd_refresh(settings: Settings, args: argparse.Namespace) -> int:
    from crypto_profiler.database import get_database
    from crypto_profiler.watchlist.sync import STATUS_FAILED, SyncConfig, run_sync_once

    try:
        db = get_database(settings.db_path)
    except StoreInitError as e:
        logger.error("refresh_store_init_failed", db_path=str(settings.db_path), error=str(e))
        return 1
    result = run_sync_once(db, SyncConfig.from_settings(settings))
    _print_json(result.to_dict())
    return 1 if result.status == STATUS_FAILED else 0


def _cmd_check(settings: Settings, args: argparse.Namespace) -> int:
    log = bind_address(args.address.strip())
    try:
        profile = profile_address(args.address, settings)
    except DeadlineExceeded as e:
        log.warning("check_deadline_exceeded", error=str(e))
        _print_json({"address": args.address.strip(), "error": str(e)})
        return 1
    _print_json(profile.to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crypto-profiler", description="Sanctions watchlist engine and wallet risk investigator.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the watchlist engine HTTP API with its refresh loop.")
    serve.add_argument("--host", default=None, help="Bind host (default: API_HOST).")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT / API_PORT / 8080).")
    serve.add_argument("--log-level", default=None, help="uvicorn log level.")
    serve.set_defaults(func=_cmd_serve)

    refresh = sub.add_parser("refresh", help="Run one feed refresh cycle and print the result.")
    refresh.set_defaults(func=_cmd_refresh)

    check = sub.add_parser("check", help="Profile and risk-score one address.")
    check.add_argument("address", help="Wallet address (EVM, Bitcoin or Solana).")
    check.set_defaults(func=_cmd_check)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(get_settings(), args)


if __name__ == "__main__":
    sys.exit(main())
