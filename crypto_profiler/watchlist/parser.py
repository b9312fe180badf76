"""
Address extraction from the sanctions feed (OFAC SDN Advanced XML layout).

Streams the document with lxml iterparse. Every element is released as soon as
it ends, except inside a party or definition record, which is released as a
whole once handled. Two kinds of records matter:

- feature-type definitions (<FeatureType ID="344">Digital Currency Address - XBT</FeatureType>)
  extend the currency type map when the identifier is not already seeded;
- <DistinctParty> records, whose <Feature FeatureTypeID="..."> children carry
  addresses in <VersionDetail> text.

Features with an unknown or missing type and details that are empty or too short
are ignored per record. A broken token stream raises FeedTruncatedError so the
caller can decide what to do with partial output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import IO, Iterator, Mapping

from lxml import etree

from crypto_profiler.core.exceptions import FeedTruncatedError
from crypto_profiler.logging import get_logger

logger = get_logger(__name__)

DIGITAL_CURRENCY_MARKER = "Digital Currency Address"
UNKNOWN_CURRENCY = "UNKNOWN"
MIN_ADDRESS_LEN = 10  # strictly longer than this after trimming
PROGRESS_EVERY_PARTIES = 10_000

PARTY_TAG = "DistinctParty"
FEATURE_TAG = "Feature"
VERSION_DETAIL_TAG = "VersionDetail"
DEFINITION_TAGS = frozenset({"FeatureType", "FeatureTypeValue"})


@dataclass(frozen=True)
class ExtractedAddress:
    """One sanctioned address candidate found in the feed."""

    address: str
    currency: str
    source: str


def _local(tag: object) -> str:
    """Local name of an element tag, namespace stripped. Comments/PIs yield ''."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _release(elem: etree._Element) -> None:
    """Free a finished element and the already-finished siblings before it."""
    elem.clear()
    parent = elem.getparent()
    if parent is None:
        return
    while elem.getprevious() is not None:
        del parent[0]


def currency_from_label(label: str) -> str:
    """'Digital Currency Address - XBT' -> 'XBT'. No separator -> UNKNOWN."""
    _, sep, rest = label.partition("-")
    ticker = rest.strip()
    if not sep or not ticker:
        return UNKNOWN_CURRENCY
    return ticker


class AddressExtractor:
    """
    One parse of the feed.

    currency_types starts as a copy of the seed and is the final map once
    extract() has been exhausted; learned holds only the identifiers added
    from the document itself.
    """

    def __init__(self, seed: Mapping[str, str], *, source: str = "OFAC") -> None:
        self.currency_types: dict[str, str] = dict(seed)
        self.learned: dict[str, str] = {}
        self.source = source
        self.parties_scanned = 0

    def _learn_definition(self, elem: etree._Element) -> None:
        type_id = (elem.get("ID") or "").strip()
        label = "".join(elem.itertext()).strip()
        if not type_id or DIGITAL_CURRENCY_MARKER not in label:
            return
        if type_id in self.currency_types:
            return
        currency = currency_from_label(label)
        self.currency_types[type_id] = currency
        self.learned[type_id] = currency
        logger.info("feed_currency_learned", feature_type_id=type_id, currency=currency)

    def _party_addresses(self, party: etree._Element) -> list[ExtractedAddress]:
        found: list[ExtractedAddress] = []
        for feature in party.iter():
            if _local(feature.tag) != FEATURE_TAG:
                continue
            currency = self.currency_types.get((feature.get("FeatureTypeID") or "").strip())
            if currency is None:
                continue
            for detail in feature.iter():
                if _local(detail.tag) != VERSION_DETAIL_TAG:
                    continue
                addr = (detail.text or "").strip()
                if len(addr) > MIN_ADDRESS_LEN:
                    found.append(ExtractedAddress(address=addr, currency=currency, source=self.source))
        return found

    def extract(self, stream: IO[bytes]) -> Iterator[ExtractedAddress]:
        """
        Lazily yield every address candidate in document order.

        Raises FeedTruncatedError if the document cannot be tokenized to its end;
        everything yielded before that point is still valid.
        """
        context = etree.iterparse(
            stream,
            events=("start", "end"),
            resolve_entities=False,
            no_network=True,
            huge_tree=True,
        )
        root = None
        # Open party/definition records; their descendants are kept until the record ends.
        holding = 0
        try:
            for event, elem in context:
                name = _local(elem.tag)
                if event == "start":
                    if root is None:
                        root = elem
                    elif name == PARTY_TAG or name in DEFINITION_TAGS:
                        holding += 1
                    continue
                if name == PARTY_TAG:
                    holding -= 1
                    yield from self._finish_party(elem)
                    continue
                if name in DEFINITION_TAGS:
                    holding -= 1
                    self._learn_definition(elem)
                if holding:
                    continue
                if elem is not root:
                    _release(elem)
        except etree.XMLSyntaxError as e:
            logger.warning(
                "feed_stream_broken",
                error=str(e),
                parties_scanned=self.parties_scanned,
            )
            raise FeedTruncatedError(str(e), parties_scanned=self.parties_scanned) from e

    def _finish_party(self, party: etree._Element) -> Iterator[ExtractedAddress]:
        addresses = self._party_addresses(party)
        self.parties_scanned += 1
        if self.parties_scanned % PROGRESS_EVERY_PARTIES == 0:
            logger.info("feed_parse_progress", parties_scanned=self.parties_scanned)
        _release(party)
        yield from addresses


def extract_addresses(
    stream: IO[bytes],
    seed: Mapping[str, str],
    *,
    source: str = "OFAC",
) -> tuple[AddressExtractor, Iterator[ExtractedAddress]]:
    """
    Convenience wrapper: return (extractor, lazy address iterator).

    Read extractor.currency_types / learned / parties_scanned after the iterator is exhausted.
    """
    extractor = AddressExtractor(seed, source=source)
    return extractor, extractor.extract(stream)
