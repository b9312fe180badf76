"""
Tests for environment-driven settings and the reference tables.
"""

from __future__ import annotations

import json
from pathlib import Path

from crypto_profiler.config import get_settings, load_currency_types, load_known_threats


def test_defaults(env, monkeypatch):
    for name in ("FEED_URL", "SYNC_INTERVAL_SEC", "WATCHLIST_ENGINE_URL", "API_HOST"):
        monkeypatch.delenv(name, raising=False)
    s = get_settings()
    assert s.feed_url.endswith("/sdn_advanced.xml")
    assert s.feed_source == "OFAC"
    assert s.sync_interval_sec == 12 * 60 * 60
    assert s.api_port == 8080
    assert s.watchlist_engine_url == "http://localhost:8080"
    assert s.watchlist_timeout_sec == 2.0
    assert s.db_path == Path(env / "watchlist.db")
    assert s.sync_enabled is False


def test_port_precedence(env, monkeypatch):
    monkeypatch.setenv("API_PORT", "9000")
    assert get_settings().api_port == 9000
    monkeypatch.setenv("PORT", "9100")
    assert get_settings().api_port == 9100


def test_invalid_numbers_fall_back(env, monkeypatch):
    monkeypatch.setenv("SYNC_INTERVAL_SEC", "often")
    monkeypatch.setenv("API_PORT", "eighty")
    s = get_settings()
    assert s.sync_interval_sec == 12 * 60 * 60
    assert s.api_port == 8080


def test_interval_floor(env, monkeypatch):
    monkeypatch.setenv("SYNC_INTERVAL_SEC", "0")
    assert get_settings().sync_interval_sec == 1.0


def test_engine_url_trailing_slash_stripped(env, monkeypatch):
    monkeypatch.setenv("WATCHLIST_ENGINE_URL", "http://engine:8080/")
    assert get_settings().watchlist_engine_url == "http://engine:8080"


def test_bundled_currency_types():
    table = load_currency_types()
    assert table["344"] == "XBT"
    assert table["345"] == "ETH"
    assert table["1167"] == "SOL"
    assert table["573"] == "XMR"


def test_currency_types_override(tmp_path):
    path = tmp_path / "types.json"
    path.write_text(json.dumps({"1": "AAA"}), encoding="utf-8")
    assert load_currency_types(path) == {"1": "AAA"}


def test_bad_currency_override_falls_back(tmp_path):
    path = tmp_path / "types.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_currency_types(path)["344"] == "XBT"
    assert load_currency_types(tmp_path / "missing.json")["344"] == "XBT"


def test_known_threats_lowercased(tmp_path):
    assert load_known_threats()["0xd90e2f925da726b50c4ed8d0fb90ad053324f31b"] == "Tornado Cash Router"
    path = tmp_path / "threats.json"
    path.write_text(json.dumps({"0xABC": "Mixer"}), encoding="utf-8")
    assert load_known_threats(path) == {"0xabc": "Mixer"}


def test_bad_known_threats_is_empty(tmp_path):
    path = tmp_path / "threats.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert load_known_threats(path) == {}
