"""
Data model shared by chain collaborators and the investigator.

WalletProfile is produced by a chain strategy and then enriched in place with
the risk fields. Timestamps are timezone-aware datetimes (UTC).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

CATEGORY_FRAUD = "FRAUD"
CATEGORY_REPUTATION = "REPUTATION"
CATEGORY_LENDING = "LENDING"
CATEGORY_SYSTEM = "SYSTEM"

SCORED_CATEGORIES = (CATEGORY_FRAUD, CATEGORY_REPUTATION, CATEGORY_LENDING)


@dataclass(frozen=True)
class Transaction:
    """One transfer touching the profiled address."""

    timestamp: datetime | None
    from_address: str
    to_address: str
    value: str = "0"
    hash: str = ""


@dataclass(frozen=True)
class RiskReason:
    """One scoring adjustment, in the order rules were evaluated."""

    category: str
    description: str
    offset: float

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "description": self.description, "offset": self.offset}


@dataclass(frozen=True)
class RiskCategory:
    """Per-category scores, each in [0, 100]."""

    fraud: float = 0.0
    reputation: float = 0.0
    lending: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"fraud": self.fraud, "reputation": self.reputation, "lending": self.lending}


@dataclass
class WalletProfile:
    """Chain state for one address plus the investigator's output."""

    address: str
    network: str
    is_valid: bool = False
    validation_details: str = ""
    is_active: bool = False
    balance: str = ""
    tx_count: int = 0
    first_seen: datetime | None = None
    last_seen: datetime | None = None

    risk_score: float = 0.0
    risk_grade: str = ""
    risk_breakdown: RiskCategory = field(default_factory=RiskCategory)
    risk_reasons: tuple[RiskReason, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "address": self.address,
            "network": self.network,
            "is_valid": self.is_valid,
            "validation_details": self.validation_details,
            "is_active": self.is_active,
            "balance": self.balance,
            "tx_count": self.tx_count,
        }
        if self.first_seen is not None:
            out["first_seen"] = self.first_seen.isoformat()
        if self.last_seen is not None:
            out["last_seen"] = self.last_seen.isoformat()
        out["risk_score"] = self.risk_score
        out["risk_grade"] = self.risk_grade
        out["risk_breakdown"] = self.risk_breakdown.to_dict()
        out["risk_reasons"] = [r.to_dict() for r in self.risk_reasons]
        return out
