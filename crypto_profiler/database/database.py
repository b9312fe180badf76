"""
Database abstraction layer for the sanction store.

One durable table keyed by address plus a key/value metadata table holding the
feed's last-modified marker. SQLite in WAL mode: a lookup never sees a
partially written refresh, and readers are not blocked by the refresh writer.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import ContextManager, Iterator

from crypto_profiler.core.exceptions import StoreInitError
from crypto_profiler.database.models import SanctionEntry, SyncMetadata
from crypto_profiler.logging import get_logger

logger = get_logger(__name__)

METADATA_LAST_MODIFIED = "last_modified"

# -----------------------------------------------------------------------------
# Schema (SQLite)
# -----------------------------------------------------------------------------

SCHEMA_SANCTIONED_ADDRESSES = """
CREATE TABLE IF NOT EXISTS sanctioned_addresses (
    address TEXT PRIMARY KEY,
    currency TEXT NOT NULL,
    source TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

SCHEMA_METADATA = """
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""

UPSERT_SANCTION_SQL = """
INSERT INTO sanctioned_addresses (address, currency, source, updated_at)
VALUES (?, ?, ?, ?)
ON CONFLICT(address) DO UPDATE SET
    currency = excluded.currency,
    source = excluded.source,
    updated_at = excluded.updated_at
"""

UPSERT_METADATA_SQL = """
INSERT INTO metadata (key, value) VALUES (?, ?)
ON CONFLICT(key) DO UPDATE SET value = excluded.value
"""


def _row_to_entry(row: sqlite3.Row) -> SanctionEntry:
    try:
        updated_at = datetime.fromisoformat(row["updated_at"])
    except (TypeError, ValueError):
        updated_at = datetime.fromtimestamp(0, tz=timezone.utc)
    return SanctionEntry(
        address=row["address"],
        currency=row["currency"],
        source=row["source"],
        updated_at=updated_at,
    )


class SanctionWriter:
    """
    Write handle bound to one open transaction.

    Obtained from Database.write_transaction(); nothing is visible to readers
    until the surrounding block exits cleanly.
    """

    def __init__(self, cursor: sqlite3.Cursor) -> None:
        self._cur = cursor
        self.upserted = 0

    def upsert(self, entry: SanctionEntry) -> None:
        """Insert or overwrite by address (last write wins)."""
        self._cur.execute(
            UPSERT_SANCTION_SQL,
            (entry.address, entry.currency, entry.source, entry.updated_at.isoformat()),
        )
        self.upserted += 1

    def set_last_modified(self, value: str | None) -> None:
        self._cur.execute(UPSERT_METADATA_SQL, (METADATA_LAST_MODIFIED, value or ""))


# -----------------------------------------------------------------------------
# Abstract backend
# -----------------------------------------------------------------------------


class DatabaseBackend(ABC):
    """Abstract interface for persistence."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create tables if they do not exist."""
        ...

    @abstractmethod
    def get_sanction(self, address: str) -> SanctionEntry | None:
        """Exact, case-sensitive lookup by address."""
        ...

    @abstractmethod
    def get_sync_metadata(self) -> SyncMetadata:
        """Return the stored freshness marker (None when never synced)."""
        ...

    @abstractmethod
    def count_sanctions(self) -> int:
        ...

    @abstractmethod
    def write_transaction(self) -> ContextManager[SanctionWriter]:
        """Context manager over one write transaction; commit on clean exit, roll back on exception."""
        ...


# -----------------------------------------------------------------------------
# SQLite backend
# -----------------------------------------------------------------------------


class SQLiteBackend(DatabaseBackend):
    """SQLite implementation; single file, one connection per operation."""

    def __init__(self, path: str | Path, *, timeout_sec: float = 5.0) -> None:
        self._path = Path(path)
        self._timeout_sec = timeout_sec

    def _connect(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._path), timeout=self._timeout_sec)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def _cursor(self):
        conn = self._connect()
        try:
            cur = conn.cursor()
            yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        with self._cursor() as cur:
            for stmt in (SCHEMA_SANCTIONED_ADDRESSES, SCHEMA_METADATA):
                cur.executescript(stmt)

    def get_sanction(self, address: str) -> SanctionEntry | None:
        with self._cursor() as cur:
            cur.execute(
                "SELECT address, currency, source, updated_at FROM sanctioned_addresses WHERE address = ?",
                (address,),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return _row_to_entry(row)

    def get_sync_metadata(self) -> SyncMetadata:
        with self._cursor() as cur:
            cur.execute("SELECT value FROM metadata WHERE key = ?", (METADATA_LAST_MODIFIED,))
            row = cur.fetchone()
        if row is None or not row["value"]:
            return SyncMetadata(last_modified=None)
        return SyncMetadata(last_modified=row["value"])

    def count_sanctions(self) -> int:
        with self._cursor() as cur:
            cur.execute("SELECT COUNT(*) AS n FROM sanctioned_addresses")
            return int(cur.fetchone()["n"])

    @contextmanager
    def write_transaction(self) -> Iterator[SanctionWriter]:
        conn = self._connect()
        try:
            # Take the write lock up front so a long refresh is one atomic unit.
            conn.execute("BEGIN IMMEDIATE")
            writer = SanctionWriter(conn.cursor())
            yield writer
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()


# -----------------------------------------------------------------------------
# Database facade
# -----------------------------------------------------------------------------


class Database:
    """
    Sanction store: upsert/get of SanctionEntry plus the SyncMetadata singleton.

    Entries are never deleted; a refresh only inserts or overwrites.
    """

    def __init__(self, backend: DatabaseBackend) -> None:
        self._backend = backend

    def ensure_schema(self) -> None:
        self._backend.ensure_schema()

    def get(self, address: str) -> SanctionEntry | None:
        """Return the entry for this exact address, or None."""
        if not address:
            return None
        return self._backend.get_sanction(address)

    def upsert(self, entry: SanctionEntry) -> None:
        """Single-entry upsert in its own transaction."""
        with self._backend.write_transaction() as writer:
            writer.upsert(entry)

    def get_sync_metadata(self) -> SyncMetadata:
        return self._backend.get_sync_metadata()

    def count(self) -> int:
        return self._backend.count_sanctions()

    def write_transaction(self) -> ContextManager[SanctionWriter]:
        """Context manager yielding a SanctionWriter for a multi-row refresh."""
        return self._backend.write_transaction()


def get_database(path: str | Path | None = None) -> Database:
    """
    Return a Database over SQLite with its schema ensured.

    path: SQLite file (default "watchlist.db" in cwd).
    Raises StoreInitError when the file cannot be opened or the schema created.
    """
    if path is None:
        path = Path("watchlist.db")
    backend = SQLiteBackend(path)
    db = Database(backend)
    try:
        db.ensure_schema()
    except (sqlite3.Error, OSError) as e:
        logger.error("store_init_failed", path=str(path), error=str(e))
        raise StoreInitError(f"cannot initialize sanction store at {path}: {e}") from e
    return db
