"""Recommendation policy: maps confidence ranges to advisory/blocking verdicts."""

from __future__ import annotations

from changeguard.config import ScoringConfig, TierConfig, check_tier_bounds
from changeguard.exceptions import ConfigError
from changeguard.scoring.models import Recommendation, Verdict


class RecommendationPolicy:
    """An ordered list of tiers, highest minimum confidence first.

    The first tier whose ``min_confidence`` is <= the confidence wins. The last
    tier has no minimum and catches everything below the others.
    """

    def __init__(self, tiers: list[Recommendation]) -> None:
        try:
            check_tier_bounds([t.min_confidence for t in tiers])
        except ValueError as e:
            raise ConfigError(str(e)) from e
        self.tiers = list(tiers)

    @classmethod
    def from_tiers(cls, tiers: list[TierConfig]) -> RecommendationPolicy:
        return cls([
            Recommendation(
                label=t.label,
                verdict=Verdict(t.verdict),
                min_confidence=t.min_confidence,
            )
            for t in tiers
        ])

    @classmethod
    def from_config(cls, config: ScoringConfig) -> RecommendationPolicy:
        return cls.from_tiers(config.tiers)

    @classmethod
    def default(cls) -> RecommendationPolicy:
        return cls.from_config(ScoringConfig())

    def classify(self, confidence: int) -> Recommendation:
        """Return the recommendation for a confidence value."""
        for tier in self.tiers:
            if tier.min_confidence is None or confidence >= tier.min_confidence:
                return tier
        # Unreachable: the last tier has no minimum
        return self.tiers[-1]

    def is_blocking(self, confidence: int) -> bool:
        return self.classify(confidence).is_blocking

    def exit_code(self, confidence: int) -> int:
        """Process exit code for a run that ended at `confidence`."""
        return 1 if self.is_blocking(confidence) else 0

    def with_labels(self, labels: dict[str, str]) -> RecommendationPolicy:
        """Copy of this policy with tier labels renamed.

        Lets one tool say "PROCEED WITH CAUTION" where another says
        "REVIEW REQUIRED" without changing where the tiers sit.
        """
        if not labels:
            return self
        return RecommendationPolicy([
            t.model_copy(update={"label": labels.get(t.label, t.label)})
            for t in self.tiers
        ])
