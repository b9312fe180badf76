"""
Tests for streaming address extraction from the sanctions feed.
"""

from __future__ import annotations

import io

import pytest

from crypto_profiler.core.exceptions import FeedTruncatedError
from crypto_profiler.watchlist import parser
from crypto_profiler.watchlist.parser import (
    UNKNOWN_CURRENCY,
    AddressExtractor,
    currency_from_label,
    extract_addresses,
)

SEED = {"344": "XBT", "345": "ETH"}


def _run(feed: bytes, seed=SEED):
    extractor, items = extract_addresses(io.BytesIO(feed), seed)
    return extractor, list(items)


def test_currency_from_label():
    assert currency_from_label("Digital Currency Address - XBT") == "XBT"
    assert currency_from_label("Digital Currency Address -  USDT ") == "USDT"
    assert currency_from_label("Digital Currency Address") == UNKNOWN_CURRENCY
    assert currency_from_label("Digital Currency Address - ") == UNKNOWN_CURRENCY


def test_extracts_seeded_and_learned_addresses(sample_feed):
    extractor, items = _run(sample_feed)
    got = {(i.address, i.currency, i.source) for i in items}
    assert got == {
        ("12t9YDPgwueZ9NyMgw519p7AA8isjr6SMw", "XBT", "OFAC"),
        ("newcoin-addr-0001", "NEWCOIN", "OFAC"),
        ("mystery-addr-0001", UNKNOWN_CURRENCY, "OFAC"),
    }
    assert extractor.parties_scanned == 2


def test_learned_types_do_not_override_seed(sample_feed):
    extractor, _ = _run(sample_feed, seed={"344": "BTC-SEEDED"})
    assert extractor.currency_types["344"] == "BTC-SEEDED"
    assert "344" not in extractor.learned
    assert extractor.learned == {"9001": "NEWCOIN", "9002": UNKNOWN_CURRENCY}


def test_seed_is_not_mutated(sample_feed):
    seed = dict(SEED)
    _run(sample_feed, seed=seed)
    assert seed == SEED


def test_non_currency_definitions_ignored(sample_feed):
    extractor, _ = _run(sample_feed)
    assert "25" not in extractor.currency_types


def test_short_details_are_dropped(sample_feed):
    _, items = _run(sample_feed)
    assert all(len(i.address) > 10 for i in items)
    assert "short" not in {i.address for i in items}


def test_definition_after_party_does_not_apply_retroactively():
    feed = b"""<Sanctions>
      <DistinctParties>
        <DistinctParty><Feature FeatureTypeID="777"><VersionDetail>late-definition-addr</VersionDetail></Feature></DistinctParty>
      </DistinctParties>
      <FeatureType ID="777">Digital Currency Address - LATE</FeatureType>
    </Sanctions>"""
    extractor, items = _run(feed)
    assert items == []
    assert extractor.learned == {"777": "LATE"}


def test_custom_source_label(sample_feed):
    extractor = AddressExtractor(SEED, source="UN")
    items = list(extractor.extract(io.BytesIO(sample_feed)))
    assert items and all(i.source == "UN" for i in items)


def test_truncated_stream_raises_after_yielding_complete_parties(sample_feed):
    cut = sample_feed[: sample_feed.index(b'<DistinctParty FixedRef="2">') + 40]
    extractor, items = extract_addresses(io.BytesIO(cut), SEED)
    seen = []
    with pytest.raises(FeedTruncatedError) as exc_info:
        for item in items:
            seen.append(item.address)
    assert seen == ["12t9YDPgwueZ9NyMgw519p7AA8isjr6SMw"]
    assert exc_info.value.parties_scanned == 1


def test_empty_document_raises():
    with pytest.raises(FeedTruncatedError):
        _run(b"")


def test_odd_party_records_are_tolerated():
    feed = b"""<Sanctions>
      <DistinctParties>
        <DistinctParty FixedRef="10">
          <Feature><VersionDetail>no-type-id-address-01</VersionDetail></Feature>
          <Feature FeatureTypeID=""><VersionDetail>empty-type-id-addr-01</VersionDetail></Feature>
          <Feature FeatureTypeID="344"><VersionDetail/></Feature>
          <Feature FeatureTypeID="344"><VersionDetail><Nested>inner-markup-address</Nested></VersionDetail></Feature>
          <Feature FeatureTypeID="999"><VersionDetail>unknown-type-address-1</VersionDetail></Feature>
        </DistinctParty>
        <DistinctParty FixedRef="11">
          <Feature FeatureTypeID="344"><VersionDetail>1KFHE7w8BhaENAswwryaoccDb6qcT6DbYY</VersionDetail></Feature>
        </DistinctParty>
      </DistinctParties>
    </Sanctions>"""
    extractor, items = _run(feed)
    assert [(i.address, i.currency) for i in items] == [("1KFHE7w8BhaENAswwryaoccDb6qcT6DbYY", "XBT")]
    assert extractor.parties_scanned == 2


def _tracking_iterparse(monkeypatch):
    """Wrap lxml iterparse and record the most siblings ever held under one parent."""
    real = parser.etree.iterparse
    peak = {"siblings": 0}

    def tracking(*args, **kwargs):
        for event, elem in real(*args, **kwargs):
            parent = elem.getparent()
            if event == "end" and parent is not None:
                peak["siblings"] = max(peak["siblings"], len(parent))
            yield event, elem

    monkeypatch.setattr(parser.etree, "iterparse", tracking)
    return peak


def test_large_non_party_section_is_released(monkeypatch):
    count = 20_000
    locations = b"".join(
        b'<Location ID="%d"><LocationPart><Value>Street %d</Value></LocationPart></Location>' % (i, i)
        for i in range(count)
    )
    feed = (
        b"<Sanctions><Locations>"
        + locations
        + b"</Locations><DistinctParties>"
        + b'<DistinctParty><Feature FeatureTypeID="344"><VersionDetail>after-locations-addr</VersionDetail></Feature></DistinctParty>'
        + b"</DistinctParties></Sanctions>"
    )
    peak = _tracking_iterparse(monkeypatch)
    _, items = _run(feed)
    assert [i.address for i in items] == ["after-locations-addr"]
    # Only the parser's read-ahead window may be alive, never the whole section.
    assert peak["siblings"] < count // 10


def test_many_parties_are_released(monkeypatch):
    count = 5_000
    party = b'<DistinctParty><Profile><Feature FeatureTypeID="345"><VersionDetail>0x%040d</VersionDetail></Feature></Profile></DistinctParty>'
    feed = b"<Sanctions><DistinctParties>" + b"".join(party % i for i in range(count)) + b"</DistinctParties></Sanctions>"
    peak = _tracking_iterparse(monkeypatch)
    extractor, items = _run(feed)
    assert len(items) == count
    assert extractor.parties_scanned == count
    assert peak["siblings"] < count // 10
