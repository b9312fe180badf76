"""
Domain models for database entities.

Sanctioned addresses and the singleton sync marker. No ORM coupling so
backends stay swappable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SanctionEntry:
    """One sanctioned address. Primary key is the address, exact and case-sensitive."""

    address: str
    currency: str
    """Ticker symbol resolved from the feed's feature type (e.g. XBT, ETH)."""
    source: str
    """Issuing authority (e.g. OFAC)."""
    updated_at: datetime
    """When the entry was last written by a sync cycle."""


@dataclass(frozen=True)
class SyncMetadata:
    """Singleton freshness marker: remote Last-Modified at the last successful parse."""

    last_modified: str | None = None
