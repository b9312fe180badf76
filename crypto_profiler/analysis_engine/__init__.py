"""
Analysis engine: wallet risk investigation.

Combines the authoritative sanctions lookup with heuristic signals (age,
velocity, known-threat interaction) into a categorized, explainable score.
"""

from crypto_profiler.analysis_engine.investigator import Investigator, grade_for_score
from crypto_profiler.analysis_engine.models import (
    RiskCategory,
    RiskReason,
    Transaction,
    WalletProfile,
)

__all__ = [
    "Investigator",
    "RiskCategory",
    "RiskReason",
    "Transaction",
    "WalletProfile",
    "grade_for_score",
]
