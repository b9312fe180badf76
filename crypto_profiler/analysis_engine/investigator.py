"""
Risk investigator: sanctions lookup plus behavioral heuristics -> explainable score.

Rules run in a fixed order and every adjustment is recorded as a RiskReason:

1. Sanctions lookup (authoritative). A hit forces 100 / CRITICAL and stops.
   An unavailable lookup adds a zero-weight SYSTEM reason and continues.
2. Age: >365 days -> REPUTATION -10; <24 hours -> FRAUD +35.
3. Known-threat counterparty -> FRAUD +55, at most once.
4. Velocity: tx per hour since first activity (floored at 1 h) > 20 -> FRAUD +25.

Categories are summed, clamped to [0, 100] independently, and combined as
0.5 * fraud + 0.3 * reputation + 0.2 * lending.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Mapping

from crypto_profiler.analysis_engine.models import (
    CATEGORY_FRAUD,
    CATEGORY_LENDING,
    CATEGORY_REPUTATION,
    CATEGORY_SYSTEM,
    SCORED_CATEGORIES,
    RiskCategory,
    RiskReason,
    Transaction,
    WalletProfile,
)
from crypto_profiler.core.exceptions import WatchlistUnavailable
from crypto_profiler.logging import get_logger
from crypto_profiler.watchlist.lookup import SanctionsLookup

logger = get_logger(__name__)

# Category weights in the combined score
WEIGHT_FRAUD = 0.5
WEIGHT_REPUTATION = 0.3
WEIGHT_LENDING = 0.2

# Offsets
OFFSET_SANCTIONED = 100.0
OFFSET_ESTABLISHED = -10.0
OFFSET_FRESH_WALLET = 35.0
OFFSET_KNOWN_THREAT = 55.0
OFFSET_HIGH_VELOCITY = 25.0

# Thresholds
ESTABLISHED_AGE_HOURS = 24 * 365
FRESH_WALLET_AGE_HOURS = 24
VELOCITY_MIN_HOURS = 1.0
VELOCITY_TX_PER_HOUR = 20.0

# Grades (lower bound inclusive)
GRADE_SANCTIONED = "CRITICAL (Sanctioned)"
GRADE_EXCELLENT = "EXCELLENT (Safe)"
GRADE_LOW = "LOW (Neutral)"
GRADE_WARNING = "WARNING (Elevated)"
GRADE_FAILING = "FAILING (High Risk)"
GRADE_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (60.0, GRADE_FAILING),
    (35.0, GRADE_WARNING),
    (10.0, GRADE_LOW),
)

OFFLINE_NOTE = " | [Warning: Sanctions DB Offline]"


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def grade_for_score(score: float) -> str:
    """<10 EXCELLENT, [10,35) LOW, [35,60) WARNING, >=60 FAILING."""
    for bound, grade in GRADE_THRESHOLDS:
        if score >= bound:
            return grade
    return GRADE_EXCELLENT


def _as_utc(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def _hours_since(ts: datetime, now: datetime) -> float:
    return (now - _as_utc(ts)).total_seconds() / 3600.0


class Investigator:
    """
    Scores a WalletProfile in place.

    lookup: any SanctionsLookup (remote WatchlistClient or local LookupService).
    known_threats: lower-cased address -> label, loaded from configuration.
    """

    def __init__(self, lookup: SanctionsLookup, known_threats: Mapping[str, str] | None = None) -> None:
        self._lookup = lookup
        self._threats = {k.lower(): v for k, v in (known_threats or {}).items()}

    def investigate(
        self,
        profile: WalletProfile,
        transactions: Iterable[Transaction] | None = None,
        *,
        now: datetime | None = None,
    ) -> None:
        """Set risk_score, risk_grade, risk_breakdown and risk_reasons on profile."""
        now = _as_utc(now) if now else datetime.now(timezone.utc)
        reasons: list[RiskReason] = []
        totals = dict.fromkeys(SCORED_CATEGORIES, 0.0)

        def add_risk(category: str, description: str, offset: float) -> None:
            reasons.append(RiskReason(category=category, description=description, offset=offset))
            if category in totals:
                totals[category] += offset

        # 1. Sanctions
        try:
            hit = self._lookup.check(profile.address)
        except WatchlistUnavailable as e:
            logger.warning("investigate_sanctions_skipped", address=profile.address, error=str(e))
            add_risk(CATEGORY_SYSTEM, "Watchlist engine unavailable - sanctions check skipped", 0.0)
            profile.validation_details += OFFLINE_NOTE
        else:
            if hit.sanctioned:
                add_risk(
                    CATEGORY_FRAUD,
                    f"CRITICAL: {hit.source or 'Unknown'} sanctioned address ({hit.currency or 'Unknown'})",
                    OFFSET_SANCTIONED,
                )
                add_risk(CATEGORY_REPUTATION, "Government blacklisted entity", OFFSET_SANCTIONED)
                add_risk(CATEGORY_LENDING, "Prohibited: federal sanctions", OFFSET_SANCTIONED)
                profile.risk_score = 100.0
                profile.risk_grade = GRADE_SANCTIONED
                profile.risk_breakdown = RiskCategory(fraud=100.0, reputation=100.0, lending=100.0)
                profile.risk_reasons = tuple(reasons)
                logger.info("investigate_sanctioned", address=profile.address, source=hit.source)
                return

        # 2. Age
        if profile.first_seen is not None:
            age_hours = _hours_since(profile.first_seen, now)
            if age_hours > ESTABLISHED_AGE_HOURS:
                add_risk(CATEGORY_REPUTATION, "Established history (>1 year)", OFFSET_ESTABLISHED)
            elif age_hours < FRESH_WALLET_AGE_HOURS:
                add_risk(CATEGORY_FRAUD, "Freshly created wallet (<24h)", OFFSET_FRESH_WALLET)

        # 3. Known-threat interaction
        own = profile.address.lower()
        for tx in transactions or ():
            if (tx.from_address or "").lower() == own:
                counterparty = (tx.to_address or "").lower()
            else:
                counterparty = (tx.from_address or "").lower()
            label = self._threats.get(counterparty)
            if label:
                add_risk(CATEGORY_FRAUD, f"Direct interaction with {label}", OFFSET_KNOWN_THREAT)
                break

        # 4. Velocity
        if profile.tx_count > 0 and profile.first_seen is not None:
            hours_active = max(VELOCITY_MIN_HOURS, _hours_since(profile.first_seen, now))
            if profile.tx_count / hours_active > VELOCITY_TX_PER_HOUR:
                add_risk(CATEGORY_FRAUD, "High velocity behavior (potential bot)", OFFSET_HIGH_VELOCITY)

        # 5. Aggregate
        fraud = clamp(totals[CATEGORY_FRAUD])
        reputation = clamp(totals[CATEGORY_REPUTATION])
        lending = clamp(totals[CATEGORY_LENDING])
        combined = fraud * WEIGHT_FRAUD + reputation * WEIGHT_REPUTATION + lending * WEIGHT_LENDING

        profile.risk_score = round(combined, 2)
        profile.risk_grade = grade_for_score(profile.risk_score)
        profile.risk_breakdown = RiskCategory(
            fraud=round(fraud, 2),
            reputation=round(reputation, 2),
            lending=round(lending, 2),
        )
        profile.risk_reasons = tuple(reasons)
        logger.debug(
            "investigate_scored",
            address=profile.address,
            risk_score=profile.risk_score,
            risk_grade=profile.risk_grade,
            reasons=len(reasons),
        )
