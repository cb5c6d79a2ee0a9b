"""Confidence scoring: folds findings into a confidence value and verdict."""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from changeguard.config import ScoringConfig
from changeguard.scoring.models import (
    Category,
    Finding,
    Recommendation,
    RiskLevel,
    ScoreReport,
    Severity,
)
from changeguard.scoring.policy import RecommendationPolicy

HIGH_RISK_CATEGORIES = frozenset({Category.SECURITY, Category.BREAKING_CHANGE})


class PenaltyTable:
    """Resolves the confidence penalty for a finding.

    A per-check override wins; otherwise the severity's default applies.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self.config = config or ScoringConfig()

    def penalty_for(self, check_id: str, severity: Severity) -> int:
        if check_id in self.config.overrides:
            return self.config.overrides[check_id]
        return getattr(self.config.penalties, severity.value)

    def finding(
        self,
        check_id: str,
        category: Category,
        severity: Severity,
        message: str,
        detail: str = "",
    ) -> Finding:
        """Build a Finding whose penalty comes from this table."""
        return Finding(
            category=category,
            severity=severity,
            message=message,
            penalty=self.penalty_for(check_id, severity),
            source=check_id,
            detail=detail,
        )


class ScoreState:
    """Accumulator for one analysis run.

    Confidence starts at ``initial`` and only ever goes down. Each run builds
    its own state; nothing here is shared between runs.
    """

    def __init__(
        self,
        policy: RecommendationPolicy | None = None,
        initial: int = 100,
        clamp_at_zero: bool = True,
        medium_risk_threshold: int = 5,
    ) -> None:
        self.policy = policy or RecommendationPolicy.default()
        self.initial = initial
        self.clamp_at_zero = clamp_at_zero
        self.medium_risk_threshold = medium_risk_threshold
        self.penalty_total = 0
        self._findings: list[Finding] = []

    @classmethod
    def from_config(
        cls, config: ScoringConfig, labels: dict[str, str] | None = None
    ) -> ScoreState:
        policy = RecommendationPolicy.from_config(config).with_labels(labels or {})
        return cls(
            policy=policy,
            initial=config.initial_confidence,
            clamp_at_zero=config.clamp_at_zero,
            medium_risk_threshold=config.medium_risk_threshold,
        )

    @property
    def confidence(self) -> int:
        value = self.initial - self.penalty_total
        if self.clamp_at_zero:
            return max(0, value)
        return value

    @property
    def findings(self) -> list[Finding]:
        return list(self._findings)

    def record(self, finding: Finding) -> None:
        self._findings.append(finding)
        self.penalty_total += finding.penalty

    def record_all(self, findings: Iterable[Finding]) -> None:
        for finding in findings:
            self.record(finding)

    def risk_level(self) -> RiskLevel:
        if any(f.category in HIGH_RISK_CATEGORIES for f in self._findings):
            return RiskLevel.HIGH
        operational = sum(
            1 for f in self._findings if f.category == Category.OPERATIONAL_RISK
        )
        if operational > self.medium_risk_threshold:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def recommendation(self) -> Recommendation:
        return self.policy.classify(self.confidence)

    def is_blocking(self) -> bool:
        return self.recommendation().is_blocking

    def exit_code(self) -> int:
        return self.policy.exit_code(self.confidence)

    def report(self) -> ScoreReport:
        """Snapshot of the current state. Does not modify it."""
        return ScoreReport(
            confidence=self.confidence,
            penalty_total=self.penalty_total,
            risk_level=self.risk_level(),
            recommendation=self.recommendation(),
            findings=self.findings,
            by_category=dict(Counter(f.category.value for f in self._findings)),
            by_severity=dict(Counter(f.severity.value for f in self._findings)),
        )
