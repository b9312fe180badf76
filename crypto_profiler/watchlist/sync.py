"""
Background refresh of the sanction store from the remote feed.

Each cycle: check the feed's Last-Modified with a HEAD request, compare it to
the stored marker, and when stale stream the full document through the
AddressExtractor inside one write transaction. The loop runs once immediately
and then every interval_sec until its stop event is set; cycles never overlap.

Failure handling:
- HEAD fails -> treat the feed as stale and download anyway (fail open).
- GET fails (connection, non-2xx) -> cycle aborted, nothing written.
- Token stream breaks mid-document -> transaction rolled back, marker not
  advanced, next cycle retries.
- Odd party records (unknown feature types, empty details) add nothing; the
  cycle still commits.
"""

from __future__ import annotations

import threading
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping

import requests

from crypto_profiler.config import Settings, load_currency_types
from crypto_profiler.core.exceptions import FeedDownloadError, FeedTruncatedError
from crypto_profiler.database import Database, SanctionEntry
from crypto_profiler.logging import get_logger
from crypto_profiler.watchlist.parser import AddressExtractor

logger = get_logger(__name__)

STATUS_UP_TO_DATE = "up_to_date"
STATUS_UPDATED = "updated"
STATUS_FAILED = "failed"

STREAM_CHUNK_BYTES = 64 * 1024
USER_AGENT = "crypto-profiler-watchlist/0.1"


@dataclass
class SyncConfig:
    """Feed location, parser seed and timing for the refresh loop."""

    feed_url: str
    source: str = "OFAC"
    currency_seed: Mapping[str, str] = field(default_factory=dict)
    interval_sec: float = 12 * 60 * 60
    head_timeout_sec: float = 15.0
    download_timeout_sec: float = 120.0

    @classmethod
    def from_settings(cls, settings: Settings) -> SyncConfig:
        return cls(
            feed_url=settings.feed_url,
            source=settings.feed_source,
            currency_seed=load_currency_types(settings.currency_types_path or None),
            interval_sec=settings.sync_interval_sec,
            head_timeout_sec=settings.feed_head_timeout_sec,
            download_timeout_sec=settings.feed_download_timeout_sec,
        )


@dataclass
class SyncResult:
    """Outcome of one refresh cycle."""

    status: str
    last_modified: str | None = None
    parties_scanned: int = 0
    addresses_loaded: int = 0
    learned_currencies: dict[str, str] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class _ResponseStream:
    """
    Minimal read()-able view over a streamed requests.Response.

    iter_content turns urllib3 read failures into requests exceptions and
    undoes Content-Encoding.
    """

    def __init__(self, resp: requests.Response, chunk_size: int = STREAM_CHUNK_BYTES) -> None:
        self._chunks: Iterator[bytes] = resp.iter_content(chunk_size=chunk_size)
        self._buf = b""

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            data = self._buf + b"".join(self._chunks)
            self._buf = b""
            return data
        while len(self._buf) < size:
            try:
                self._buf += next(self._chunks)
            except StopIteration:
                break
        data, self._buf = self._buf[:size], self._buf[size:]
        return data


def fetch_remote_marker(url: str, timeout: float) -> str | None:
    """HEAD the feed and return its Last-Modified header (None if absent)."""
    resp = requests.head(
        url,
        timeout=timeout,
        allow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )
    resp.raise_for_status()
    return resp.headers.get("Last-Modified")


def is_feed_stale(db: Database, config: SyncConfig) -> bool:
    """
    True when a download is needed.

    No stored marker, no remote marker, a differing marker, or a failed HEAD
    all count as stale.
    """
    local = db.get_sync_metadata().last_modified
    try:
        remote = fetch_remote_marker(config.feed_url, config.head_timeout_sec)
    except requests.RequestException as e:
        logger.warning("watchlist_sync_head_failed", url=config.feed_url, error=str(e))
        return True
    if not local or not remote:
        return True
    return local != remote


def download_and_ingest(
    db: Database,
    config: SyncConfig,
    *,
    now: datetime | None = None,
) -> SyncResult:
    """
    GET the feed and upsert every extracted address in a single transaction.

    Raises FeedDownloadError before anything is written, FeedTruncatedError
    after rolling back.
    """
    now = now or datetime.now(timezone.utc)
    try:
        resp = requests.get(
            config.feed_url,
            stream=True,
            timeout=(config.head_timeout_sec, config.download_timeout_sec),
            headers={"User-Agent": USER_AGENT},
        )
    except requests.RequestException as e:
        raise FeedDownloadError(f"feed download failed: {e}") from e

    with resp:
        if not resp.ok:
            raise FeedDownloadError(
                f"feed download returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        last_modified = resp.headers.get("Last-Modified")
        logger.info("watchlist_sync_download_started", last_modified=last_modified)

        extractor = AddressExtractor(config.currency_seed, source=config.source)
        with db.write_transaction() as writer:
            try:
                for item in extractor.extract(_ResponseStream(resp)):
                    writer.upsert(
                        SanctionEntry(
                            address=item.address,
                            currency=item.currency,
                            source=item.source,
                            updated_at=now,
                        )
                    )
            except requests.RequestException as e:
                raise FeedTruncatedError(
                    f"feed stream interrupted: {e}",
                    parties_scanned=extractor.parties_scanned,
                ) from e
            writer.set_last_modified(last_modified)
            loaded = writer.upserted

    return SyncResult(
        status=STATUS_UPDATED,
        last_modified=last_modified,
        parties_scanned=extractor.parties_scanned,
        addresses_loaded=loaded,
        learned_currencies=dict(extractor.learned),
    )


def run_sync_once(db: Database, config: SyncConfig) -> SyncResult:
    """
    One refresh cycle: freshness check, then download/parse/commit when stale.

    Never raises for feed failures; they come back as status=failed.
    """
    started = time.monotonic()
    if not is_feed_stale(db, config):
        logger.info("watchlist_sync_up_to_date")
        return SyncResult(status=STATUS_UP_TO_DATE, last_modified=db.get_sync_metadata().last_modified)

    try:
        result = download_and_ingest(db, config)
    except FeedDownloadError as e:
        logger.warning("watchlist_sync_download_failed", error=str(e), status_code=e.status_code)
        return SyncResult(status=STATUS_FAILED, error=str(e))
    except FeedTruncatedError as e:
        logger.warning(
            "watchlist_sync_rolled_back",
            error=str(e),
            parties_scanned=e.parties_scanned,
        )
        return SyncResult(status=STATUS_FAILED, parties_scanned=e.parties_scanned, error=str(e))

    logger.info(
        "watchlist_sync_done",
        parties_scanned=result.parties_scanned,
        addresses_loaded=result.addresses_loaded,
        learned_currencies=result.learned_currencies,
        duration_sec=round(time.monotonic() - started, 2),
    )
    if result.addresses_loaded == 0:
        logger.warning("watchlist_sync_zero_addresses", hint="check feature type identifiers")
    return result


def run_sync_loop(
    stop_event: threading.Event,
    db: Database,
    config: SyncConfig,
    *,
    max_cycles: int | None = None,
) -> int:
    """
    Loop: run a cycle now, then every interval_sec, until stop_event is set.

    max_cycles bounds the loop for tests. Returns the number of cycles run.
    Exceptions inside a cycle are logged; the loop itself never dies.
    """
    logger.info("watchlist_sync_worker_started", interval_sec=config.interval_sec, url=config.feed_url)
    cycle = 0
    while not stop_event.is_set():
        cycle += 1
        try:
            run_sync_once(db, config)
        except Exception as e:
            logger.exception("watchlist_sync_error", cycle=cycle, error=str(e))
        if max_cycles is not None and cycle >= max_cycles:
            break
        if stop_event.wait(timeout=config.interval_sec):
            break
    logger.info("watchlist_sync_worker_stopped", cycles=cycle)
    return cycle


def start_sync_thread(db: Database, config: SyncConfig) -> tuple[threading.Thread, threading.Event]:
    """Start run_sync_loop in a daemon thread; set the returned event to stop it."""
    stop_event = threading.Event()
    thread = threading.Thread(
        target=run_sync_loop,
        args=(stop_event, db, config),
        name="watchlist-sync",
        daemon=True,
    )
    thread.start()
    return thread, stop_event
