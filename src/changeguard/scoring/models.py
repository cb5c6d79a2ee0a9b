"""Data models for findings, recommendations and score reports."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    """What kind of problem a finding describes."""

    ENVIRONMENT = "environment"
    DEPENDENCY = "dependency"
    CODE_QUALITY = "code-quality"
    SECURITY = "security"
    BREAKING_CHANGE = "breaking-change"
    OPERATIONAL_RISK = "operational-risk"


class Severity(str, Enum):
    """Severity class of a finding."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskLevel(str, Enum):
    """Coarse risk classification of a whole run."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Verdict(str, Enum):
    """Whether a recommendation lets the caller proceed."""

    ADVISORY = "advisory"
    BLOCKING = "blocking"


class Finding(BaseModel):
    """A single observation emitted by a check or detector."""

    model_config = ConfigDict(frozen=True)

    category: Category
    severity: Severity
    message: str
    penalty: int = Field(ge=0)
    source: str = ""  # id of the originating check or detector
    detail: str = ""  # e.g., file path or offending command


class Recommendation(BaseModel):
    """Human-facing verdict derived from a confidence value."""

    model_config = ConfigDict(frozen=True)

    label: str
    verdict: Verdict
    min_confidence: int | None = None

    @property
    def is_blocking(self) -> bool:
        return self.verdict == Verdict.BLOCKING


class ScoreReport(BaseModel):
    """Snapshot of a score state at report time."""

    confidence: int
    penalty_total: int
    risk_level: RiskLevel
    recommendation: Recommendation
    findings: list[Finding] = Field(default_factory=list)
    by_category: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)

    @property
    def is_blocking(self) -> bool:
        return self.recommendation.is_blocking
