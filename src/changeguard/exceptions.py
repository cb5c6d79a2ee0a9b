"""Custom exceptions for ChangeGuard."""


class ChangeGuardError(Exception):
    """Base exception for all ChangeGuard errors."""


class ConfigError(ChangeGuardError):
    """Configuration-related errors."""


class DetectorError(ChangeGuardError):
    """Detector registration or lookup errors."""


class CheckFailed(ChangeGuardError):
    """Raised by a preflight check body when the check does not pass."""


class CriticalCheckFailed(CheckFailed):
    """A critical preflight check failed; remaining checks are skipped."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Critical check failed: {name} - {reason}")


class SimulationAborted(ChangeGuardError):
    """Raised when a dry run ends with a blocking recommendation."""

    def __init__(self, report):
        self.report = report  # SimulationReport
        score = report.report
        super().__init__(
            f"Simulation failed with confidence {score.confidence}%: "
            f"{score.recommendation.label}"
        )
