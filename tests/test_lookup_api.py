"""
Tests for the lookup service, its HTTP API and the remote watchlist client.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from crypto_profiler.core.exceptions import WatchlistUnavailable
from crypto_profiler.database import SanctionEntry, get_database
from crypto_profiler.watchlist import CheckResult, LookupService, WatchlistClient

SANCTIONED = "12t9YDPgwueZ9NyMgw519p7AA8isjr6SMw"


@pytest.fixture
def seeded_store(env):
    db = get_database(env / "watchlist.db")
    db.upsert(
        SanctionEntry(
            address=SANCTIONED,
            currency="XBT",
            source="OFAC",
            updated_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
    )
    return db


def test_check_result_to_dict():
    assert CheckResult(sanctioned=False).to_dict() == {"sanctioned": False}
    assert CheckResult(sanctioned=True, currency="XBT", source="OFAC").to_dict() == {
        "sanctioned": True,
        "currency": "XBT",
        "source": "OFAC",
    }


def test_lookup_service_hit_and_miss(seeded_store):
    svc = LookupService(seeded_store)
    assert svc.check(SANCTIONED) == CheckResult(sanctioned=True, currency="XBT", source="OFAC")
    assert svc.check("1BoatSLRHtKNngkdXEeobR76b53LETtpyT") == CheckResult(sanctioned=False)
    assert svc.check(SANCTIONED.lower()).sanctioned is False


def test_lookup_service_store_error():
    db = MagicMock()
    db.get.side_effect = sqlite3.OperationalError("disk I/O error")
    with pytest.raises(WatchlistUnavailable):
        LookupService(db).check(SANCTIONED)


def test_api_check_sanctioned(client, seeded_store):
    r = client.get("/check", params={"address": SANCTIONED})
    assert r.status_code == 200
    assert r.json() == {"sanctioned": True, "address": SANCTIONED, "currency": "XBT", "source": "OFAC"}


def test_api_check_clean(client, seeded_store):
    r = client.get("/check", params={"address": "0x0000000000000000000000000000000000000001"})
    assert r.status_code == 200
    data = r.json()
    assert data["sanctioned"] is False
    assert "currency" not in data
    assert "source" not in data


def test_api_check_on_empty_store(client):
    r = client.get("/check", params={"address": SANCTIONED})
    assert r.status_code == 200
    assert r.json()["sanctioned"] is False


@pytest.mark.parametrize("query", ["", "?address="])
def test_api_check_missing_address(client, query):
    r = client.get("/check" + query)
    assert r.status_code == 400
    assert r.json() == {"detail": "Missing address parameter"}


def test_api_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.text == "OK"


def _session_returning(response=None, error=None):
    session = MagicMock()
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return session


def _response(status_code=200, body=None, bad_json=False):
    resp = MagicMock()
    resp.status_code = status_code
    if bad_json:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = body
    return resp


def test_client_hit():
    session = _session_returning(_response(body={"sanctioned": True, "currency": "ETH", "source": "OFAC"}))
    client = WatchlistClient("http://engine:8080/", timeout_sec=2.0, session=session)
    assert client.check("0xabc") == CheckResult(sanctioned=True, currency="ETH", source="OFAC")
    session.get.assert_called_once_with(
        "http://engine:8080/check", params={"address": "0xabc"}, timeout=2.0
    )


def test_client_miss_drops_extra_fields():
    session = _session_returning(_response(body={"sanctioned": False, "currency": "ETH"}))
    assert WatchlistClient("http://engine", session=session).check("0xabc") == CheckResult(sanctioned=False)


@pytest.mark.parametrize(
    "session",
    [
        _session_returning(error=requests.ConnectTimeout("timed out")),
        _session_returning(error=requests.ConnectionError("refused")),
        _session_returning(_response(status_code=500, body={})),
        _session_returning(_response(status_code=400, body={"detail": "Missing address parameter"})),
        _session_returning(_response(bad_json=True)),
        _session_returning(_response(body=["not", "an", "object"])),
    ],
)
def test_client_unavailable(session):
    with pytest.raises(WatchlistUnavailable):
        WatchlistClient("http://engine", session=session).check("0xabc")


def test_client_against_running_app(client, seeded_store):
    """WatchlistClient speaks the same wire format the API serves."""
    wc = WatchlistClient(str(client.base_url), session=client)
    assert wc.check(SANCTIONED) == CheckResult(sanctioned=True, currency="XBT", source="OFAC")


def test_lifespan_without_refresh_loop(env):
    from fastapi.testclient import TestClient

    from crypto_profiler.api_server.server import app

    with TestClient(app) as c:
        assert c.get("/health").text == "OK"


def test_api_reuses_store_opened_at_startup(env, monkeypatch, seeded_store):
    from fastapi.testclient import TestClient

    from crypto_profiler.api_server import server

    opened = []
    real_get_database = server.get_database

    def counting_get_database(path=None):
        opened.append(path)
        return real_get_database(path)

    monkeypatch.setattr(server, "get_database", counting_get_database)
    with TestClient(server.app) as c:
        for _ in range(3):
            r = c.get("/check", params={"address": SANCTIONED})
            assert r.json()["sanctioned"] is True
        assert server.app.state.db is not None
    assert len(opened) == 1


def test_lifespan_starts_and_stops_refresh_loop(env, monkeypatch):
    import threading

    from fastapi.testclient import TestClient

    from crypto_profiler.api_server import server

    monkeypatch.setenv("WATCHLIST_SYNC_ENABLED", "1")
    stop = threading.Event()
    thread = MagicMock()
    thread.is_alive.return_value = False
    monkeypatch.setattr(server, "start_sync_thread", MagicMock(return_value=(thread, stop)))

    with TestClient(server.app) as c:
        assert c.get("/health").status_code == 200
        server.start_sync_thread.assert_called_once()
        assert not stop.is_set()
    assert stop.is_set()
    thread.join.assert_called_once()
