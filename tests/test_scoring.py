"""Tests for the confidence scorer and recommendation policy."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from changeguard.config import ScoringConfig, TierConfig
from changeguard.exceptions import ConfigError
from changeguard.scoring import (
    Category,
    Finding,
    PenaltyTable,
    RecommendationPolicy,
    RiskLevel,
    ScoreState,
    Severity,
    Verdict,
)


def _finding(
    penalty: int = 5,
    category: Category = Category.OPERATIONAL_RISK,
    severity: Severity = Severity.LOW,
    message: str = "something happened",
) -> Finding:
    return Finding(category=category, severity=severity, message=message, penalty=penalty)


class TestScoreState:
    def test_no_findings(self):
        state = ScoreState()
        assert state.confidence == 100
        assert state.risk_level() == RiskLevel.LOW
        assert state.recommendation().label == "SAFE TO PROCEED"
        assert not state.is_blocking()
        assert state.exit_code() == 0

    def test_record_subtracts_penalty(self):
        state = ScoreState()
        state.record(_finding(penalty=15))
        assert state.confidence == 85
        assert state.penalty_total == 15

    def test_confidence_is_initial_minus_sum(self):
        state = ScoreState()
        penalties = [5, 10, 15, 0, 3]
        state.record_all(_finding(penalty=p) for p in penalties)
        assert state.confidence == 100 - sum(penalties)

    def test_confidence_never_increases(self):
        state = ScoreState()
        seen = [state.confidence]
        for p in (0, 10, 0, 25):
            state.record(_finding(penalty=p))
            seen.append(state.confidence)
        assert seen == sorted(seen, reverse=True)

    def test_order_does_not_change_confidence(self):
        a, b = ScoreState(), ScoreState()
        findings = [_finding(penalty=p, message=str(p)) for p in (5, 30, 12)]
        a.record_all(findings)
        b.record_all(reversed(findings))
        assert a.confidence == b.confidence
        assert [f.message for f in a.findings] == ["5", "30", "12"]
        assert [f.message for f in b.findings] == ["12", "30", "5"]

    def test_clamps_at_zero(self):
        state = ScoreState()
        state.record(_finding(penalty=60))
        state.record(_finding(penalty=60))
        assert state.confidence == 0
        assert state.penalty_total == 120
        assert state.recommendation().label == "DO NOT PROCEED"

    def test_unclamped_can_go_negative(self):
        state = ScoreState(clamp_at_zero=False)
        state.record(_finding(penalty=120))
        assert state.confidence == -20
        assert state.recommendation().label == "DO NOT PROCEED"

    def test_security_finding_is_high_risk_regardless_of_confidence(self):
        state = ScoreState()
        state.record(_finding(penalty=1, category=Category.SECURITY))
        assert state.confidence == 99
        assert state.risk_level() == RiskLevel.HIGH

    def test_breaking_change_is_high_risk(self):
        state = ScoreState()
        state.record(_finding(penalty=0, category=Category.BREAKING_CHANGE))
        assert state.risk_level() == RiskLevel.HIGH

    def test_medium_risk_needs_more_than_five_operational_findings(self):
        state = ScoreState()
        state.record_all(_finding(penalty=0) for _ in range(5))
        assert state.risk_level() == RiskLevel.LOW
        state.record(_finding(penalty=0))
        assert state.risk_level() == RiskLevel.MEDIUM

    def test_other_categories_do_not_raise_risk(self):
        state = ScoreState()
        state.record_all(
            _finding(penalty=0, category=Category.CODE_QUALITY) for _ in range(10)
        )
        assert state.risk_level() == RiskLevel.LOW

    def test_single_breaking_change_of_forty(self):
        state = ScoreState()
        state.record(_finding(penalty=40, category=Category.BREAKING_CHANGE, severity=Severity.CRITICAL))
        assert state.confidence == 60
        assert state.risk_level() == RiskLevel.HIGH
        assert state.recommendation().label == "DETAILED REVIEW REQUIRED"
        assert state.is_blocking()
        assert state.exit_code() == 1

    def test_report_is_idempotent(self):
        state = ScoreState()
        state.record(_finding(penalty=10, category=Category.SECURITY))
        assert state.report() == state.report()

    def test_report_does_not_mutate(self):
        state = ScoreState()
        state.record(_finding(penalty=10))
        report = state.report()
        report.findings.append(_finding(penalty=50))
        assert state.confidence == 90
        assert len(state.findings) == 1

    def test_report_contents(self):
        state = ScoreState()
        state.record(_finding(penalty=15, category=Category.SECURITY, severity=Severity.MEDIUM))
        state.record(_finding(penalty=5))
        report = state.report()
        assert report.confidence == 80
        assert report.penalty_total == 20
        assert report.risk_level == RiskLevel.HIGH
        assert report.recommendation.label == "REVIEW REQUIRED"
        assert report.by_category == {"security": 1, "operational-risk": 1}
        assert report.by_severity == {"medium": 1, "low": 1}

    def test_report_json_dump(self):
        state = ScoreState()
        state.record(_finding(penalty=5))
        data = state.report().model_dump(mode="json")
        assert data["confidence"] == 95
        assert data["risk_level"] == "low"
        assert data["recommendation"]["verdict"] == "advisory"
        assert data["findings"][0]["category"] == "operational-risk"

    def test_from_config_applies_labels(self):
        state = ScoreState.from_config(
            ScoringConfig(), labels={"REVIEW REQUIRED": "PROCEED WITH CAUTION"}
        )
        state.record(_finding(penalty=20))
        assert state.recommendation().label == "PROCEED WITH CAUTION"

    def test_independent_states(self):
        a, b = ScoreState(), ScoreState()
        a.record(_finding(penalty=50))
        assert b.confidence == 100
        assert b.findings == []


class TestRecommendationPolicy:
    @pytest.mark.parametrize(
        "confidence,label,verdict",
        [
            (100, "SAFE TO PROCEED", Verdict.ADVISORY),
            (90, "SAFE TO PROCEED", Verdict.ADVISORY),
            (89, "REVIEW REQUIRED", Verdict.ADVISORY),
            (70, "REVIEW REQUIRED", Verdict.ADVISORY),
            (69, "DETAILED REVIEW REQUIRED", Verdict.BLOCKING),
            (50, "DETAILED REVIEW REQUIRED", Verdict.BLOCKING),
            (49, "DO NOT PROCEED", Verdict.BLOCKING),
            (0, "DO NOT PROCEED", Verdict.BLOCKING),
            (-15, "DO NOT PROCEED", Verdict.BLOCKING),
        ],
    )
    def test_tier_boundaries(self, confidence: int, label: str, verdict: Verdict):
        rec = RecommendationPolicy.default().classify(confidence)
        assert rec.label == label
        assert rec.verdict == verdict

    def test_exit_codes(self):
        policy = RecommendationPolicy.default()
        assert policy.exit_code(70) == 0
        assert policy.exit_code(69) == 1

    def test_with_labels_keeps_verdicts(self):
        policy = RecommendationPolicy.default().with_labels(
            {"REVIEW REQUIRED": "PROCEED WITH CAUTION"}
        )
        rec = policy.classify(75)
        assert rec.label == "PROCEED WITH CAUTION"
        assert rec.verdict == Verdict.ADVISORY
        assert policy.classify(95).label == "SAFE TO PROCEED"

    def test_custom_tiers(self):
        policy = RecommendationPolicy.from_tiers([
            TierConfig(min_confidence=50, label="GO"),
            TierConfig(min_confidence=None, label="STOP", verdict="blocking"),
        ])
        assert policy.classify(50).label == "GO"
        assert policy.is_blocking(49)

    def test_tiers_must_descend(self):
        with pytest.raises(ConfigError):
            RecommendationPolicy.from_tiers([
                TierConfig(min_confidence=50, label="A"),
                TierConfig(min_confidence=90, label="B"),
                TierConfig(min_confidence=None, label="C"),
            ])

    def test_last_tier_must_be_catch_all(self):
        with pytest.raises(ConfigError):
            RecommendationPolicy.from_tiers([
                TierConfig(min_confidence=90, label="A"),
                TierConfig(min_confidence=50, label="B"),
            ])

    def test_unknown_verdict(self):
        with pytest.raises(ValidationError):
            TierConfig(min_confidence=None, label="A", verdict="maybe")

    def test_duplicate_minimums(self):
        with pytest.raises(ConfigError):
            RecommendationPolicy.from_tiers([
                TierConfig(min_confidence=50, label="A"),
                TierConfig(min_confidence=50, label="B"),
                TierConfig(min_confidence=None, label="C"),
            ])


class TestPenaltyTable:
    def test_override_wins(self):
        table = PenaltyTable()
        assert table.penalty_for("dangerous-command", Severity.LOW) == 40

    def test_severity_default(self):
        table = PenaltyTable()
        assert table.penalty_for("unknown-check", Severity.CRITICAL) == 40
        assert table.penalty_for("unknown-check", Severity.HIGH) == 25
        assert table.penalty_for("unknown-check", Severity.MEDIUM) == 15
        assert table.penalty_for("unknown-check", Severity.LOW) == 5

    def test_finding_builder(self):
        finding = PenaltyTable().finding(
            "path-exists", Category.ENVIRONMENT, Severity.MEDIUM, "File does not exist", "a.txt"
        )
        assert finding.penalty == 20
        assert finding.source == "path-exists"
        assert finding.detail == "a.txt"


class TestFinding:
    def test_immutable(self):
        finding = _finding()
        with pytest.raises(ValidationError):
            finding.penalty = 99

    def test_negative_penalty_rejected(self):
        with pytest.raises(ValidationError):
            _finding(penalty=-1)
