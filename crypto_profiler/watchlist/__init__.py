"""
Sanctions watchlist engine: feed parsing, periodic refresh, and lookups.

Write path: run_sync_loop -> AddressExtractor -> Database (background thread).
Read path: LookupService -> Database (per request). They share only the store.
"""

from crypto_profiler.watchlist.lookup import (
    CheckResult,
    LookupService,
    SanctionsLookup,
    WatchlistClient,
)
from crypto_profiler.watchlist.parser import AddressExtractor, ExtractedAddress, extract_addresses
from crypto_profiler.watchlist.sync import (
    SyncConfig,
    SyncResult,
    run_sync_loop,
    run_sync_once,
    start_sync_thread,
)

__all__ = [
    "AddressExtractor",
    "CheckResult",
    "ExtractedAddress",
    "LookupService",
    "SanctionsLookup",
    "SyncConfig",
    "SyncResult",
    "WatchlistClient",
    "extract_addresses",
    "run_sync_loop",
    "run_sync_once",
    "start_sync_thread",
]
