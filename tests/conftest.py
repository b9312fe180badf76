"""
Pytest fixtures for crypto_profiler tests. Uses a temporary SQLite sanction store.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone

import pytest

SAMPLE_FEED = b"""<?xml version="1.0" encoding="utf-8"?>
<Sanctions xmlns="http://www.un.org/sanctions/1.0">
  <ReferenceValueSets>
    <FeatureTypeValues>
      <FeatureType ID="344">Digital Currency Address - XBT</FeatureType>
      <FeatureType ID="9001">Digital Currency Address - NEWCOIN</FeatureType>
      <FeatureType ID="9002">Digital Currency Address</FeatureType>
      <FeatureType ID="25">Birthdate</FeatureType>
    </FeatureTypeValues>
  </ReferenceValueSets>
  <DistinctParties>
    <DistinctParty FixedRef="1">
      <Profile>
        <Feature FeatureTypeID="344">
          <FeatureVersion><VersionDetail>  12t9YDPgwueZ9NyMgw519p7AA8isjr6SMw  </VersionDetail></FeatureVersion>
        </Feature>
        <Feature FeatureTypeID="25">
          <FeatureVersion><VersionDetail>1970-01-01-not-an-address</VersionDetail></FeatureVersion>
        </Feature>
      </Profile>
    </DistinctParty>
    <DistinctParty FixedRef="2">
      <Profile>
        <Feature FeatureTypeID="9001">
          <FeatureVersion><VersionDetail>newcoin-addr-0001</VersionDetail></FeatureVersion>
        </Feature>
        <Feature FeatureTypeID="9002">
          <FeatureVersion><VersionDetail>mystery-addr-0001</VersionDetail></FeatureVersion>
        </Feature>
        <Feature FeatureTypeID="344">
          <FeatureVersion><VersionDetail>short</VersionDetail></FeatureVersion>
        </Feature>
      </Profile>
    </DistinctParty>
  </DistinctParties>
</Sanctions>
"""

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeResponse:
    """Just enough of requests.Response for the feed sync code."""

    def __init__(self, body: bytes = b"", *, status_code: int = 200, headers: dict | None = None, error=None):
        self._body = body
        self.status_code = status_code
        self.headers = headers or {}
        self._error = error
        self.closed = False

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def raise_for_status(self) -> None:
        import requests

        if not self.ok:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def iter_content(self, chunk_size: int = 1):
        stream = io.BytesIO(self._body)
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
        if self._error is not None:
            raise self._error

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False


@pytest.fixture
def sample_feed() -> bytes:
    return SAMPLE_FEED


@pytest.fixture
def db(tmp_path):
    """Fresh sanction store in a temp directory."""
    from crypto_profiler.database import get_database

    return get_database(tmp_path / "watchlist.db")


@pytest.fixture
def env(tmp_path, monkeypatch):
    """Point settings at a temp store and keep the refresh loop off."""
    monkeypatch.setenv("DB_PATH", str(tmp_path / "watchlist.db"))
    monkeypatch.setenv("WATCHLIST_SYNC_ENABLED", "0")
    for name in (
        "PORT",
        "API_PORT",
        "WATCHLIST_ENGINE_URL",
        "ETHERSCAN_API_KEY",
        "COINSTATS_API_KEY",
        "KNOWN_THREATS_PATH",
        "CURRENCY_TYPES_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def client(env):
    """FastAPI TestClient over the temp store. The lifespan runs; the refresh loop is off via env."""
    from fastapi.testclient import TestClient

    from crypto_profiler.api_server.server import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def fake_response():
    """Factory for FakeResponse objects."""
    return FakeResponse
