"""
Core utilities: error taxonomy and cross-cutting concerns shared by the
watchlist engine, API server, investigator and chain collaborators.
"""

from crypto_profiler.core.exceptions import (
    ChainFetchError,
    DeadlineExceeded,
    FeedDownloadError,
    FeedTruncatedError,
    ProfilerError,
    StoreInitError,
    WatchlistUnavailable,
)

__all__ = [
    "ChainFetchError",
    "DeadlineExceeded",
    "FeedDownloadError",
    "FeedTruncatedError",
    "ProfilerError",
    "StoreInitError",
    "WatchlistUnavailable",
]
