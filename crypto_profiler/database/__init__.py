"""
Database abstraction layer: sanctioned addresses and the feed freshness marker.

SQLite via Database and get_database(); backend is swappable behind DatabaseBackend.
"""

from crypto_profiler.database.database import (
    Database,
    DatabaseBackend,
    SanctionWriter,
    SQLiteBackend,
    get_database,
)
from crypto_profiler.database.models import SanctionEntry, SyncMetadata

__all__ = [
    "Database",
    "DatabaseBackend",
    "SanctionEntry",
    "SanctionWriter",
    "SQLiteBackend",
    "SyncMetadata",
    "get_database",
]
