"""
Application-level exceptions.

Transient network failures surface as FeedDownloadError / WatchlistUnavailable /
ChainFetchError and are converted to degraded output by their callers.
StoreInitError is the only fatal one, and only at startup.
"""

from __future__ import annotations


class ProfilerError(Exception):
    """Base class for all crypto_profiler errors."""


class StoreInitError(ProfilerError):
    """Sanction store could not be opened or its schema created."""


class FeedDownloadError(ProfilerError):
    """Feed GET failed (connection error or non-2xx status)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FeedTruncatedError(ProfilerError):
    """Feed token stream ended abnormally (syntax error, premature EOF, read error)."""

    def __init__(self, message: str, *, parties_scanned: int = 0) -> None:
        super().__init__(message)
        self.parties_scanned = parties_scanned


class WatchlistUnavailable(ProfilerError):
    """Lookup service could not answer (connection, timeout, non-200, bad body)."""


class ChainFetchError(ProfilerError):
    """On-chain data provider call failed."""


class DeadlineExceeded(ProfilerError):
    """The caller's per-request time budget ran out before an outbound call."""
