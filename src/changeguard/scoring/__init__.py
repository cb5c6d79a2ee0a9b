"""Heuristic risk scoring shared by the preflight, impact and simulation tools.

Usage:
    from changeguard.scoring import ScoreState, PenaltyTable, Category, Severity

    state = ScoreState()
    state.record(PenaltyTable().finding("my-check", Category.SECURITY, Severity.HIGH, "..."))
    print(state.report().recommendation.label)
"""

from changeguard.scoring.models import (
    Category,
    Finding,
    Recommendation,
    RiskLevel,
    ScoreReport,
    Severity,
    Verdict,
)
from changeguard.scoring.policy import RecommendationPolicy
from changeguard.scoring.scorer import PenaltyTable, ScoreState

__all__ = [
    "Category",
    "Finding",
    "PenaltyTable",
    "Recommendation",
    "RecommendationPolicy",
    "RiskLevel",
    "ScoreReport",
    "ScoreState",
    "Severity",
    "Verdict",
]
