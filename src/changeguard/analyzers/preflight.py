"""Preflight checks - validate prerequisites before a change is executed.

Each check is a small function that returns a detail string on success or
raises CheckFailed. Failures become findings; a failed critical check stops
the remaining check groups but the run still produces a report.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from changeguard.config import ProjectConfig
from changeguard.detectors import DetectionContext, DetectorRegistry, get_default_registry
from changeguard.exceptions import CheckFailed, CriticalCheckFailed
from changeguard.scan import collect_files, is_test_file, read_source
from changeguard.scoring import Category, PenaltyTable, ScoreReport, ScoreState, Severity

logger = logging.getLogger("changeguard.preflight")

GIT_TIMEOUT = 10


@dataclass
class CheckResult:
    """Outcome of one preflight check."""
    name: str
    passed: bool
    detail: str = ""
    critical: bool = False


@dataclass
class PreflightResult:
    """Everything a preflight run produced."""
    checks: list[CheckResult]
    report: ScoreReport
    warnings: list[str] = field(default_factory=list)
    aborted: str | None = None  # set when a critical check stopped the run

    @property
    def passed(self) -> int:
        return sum(1 for c in self.checks if c.passed)

    @property
    def failed(self) -> int:
        return sum(1 for c in self.checks if not c.passed)

    @property
    def ok(self) -> bool:
        return not self.report.is_blocking

    def to_dict(self) -> dict:
        return {
            **self.report.model_dump(mode="json"),
            "checks": [
                {
                    "name": c.name,
                    "status": "PASS" if c.passed else "FAIL",
                    "detail": c.detail,
                    "critical": c.critical,
                }
                for c in self.checks
            ],
            "passed": self.passed,
            "failed": self.failed,
            "warnings": self.warnings,
            "aborted": self.aborted,
        }


def parse_version(text: str) -> tuple[int, ...]:
    """'3.10' -> (3, 10). Non-numeric parts are ignored."""
    parts = []
    for piece in text.strip().lstrip("v").split("."):
        digits = "".join(ch for ch in piece if ch.isdigit())
        if not digits:
            break
        parts.append(int(digits))
    return tuple(parts)


class PreflightChecker:
    """Runs environment, dependency and code-quality checks for a project."""

    def __init__(
        self,
        root: Path,
        config: ProjectConfig | None = None,
        registry: DetectorRegistry | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.config = config or ProjectConfig()
        self.registry = registry or get_default_registry()
        self.table = PenaltyTable(self.config.scoring)
        self.ctx = DetectionContext(config=self.config, root=self.root, table=self.table)
        self.state = ScoreState.from_config(
            self.config.scoring, labels=self.config.preflight.labels
        )
        self.checks: list[CheckResult] = []
        self.warnings: list[str] = []

    def check(
        self,
        name: str,
        fn: Callable[[], str],
        critical: bool = False,
        category: Category = Category.ENVIRONMENT,
    ) -> bool:
        """Run one check and record its outcome.

        Raises CriticalCheckFailed when a critical check fails.
        """
        try:
            detail = fn()
        except (CheckFailed, OSError, subprocess.SubprocessError) as e:
            reason = str(e)
            logger.info(f"Check '{name}' failed: {reason}")
            self.checks.append(CheckResult(name, False, reason, critical))
            self.state.record(self.table.finding(
                "preflight.critical" if critical else "preflight.check",
                category,
                Severity.CRITICAL if critical else Severity.LOW,
                f"{name}: {reason}",
            ))
            if critical:
                raise CriticalCheckFailed(name, reason) from e
            return False

        self.checks.append(CheckResult(name, True, detail or "", critical))
        return True

    def warn(self, message: str) -> None:
        logger.info(message)
        self.warnings.append(message)

    # -- environment -----------------------------------------------------

    def check_environment(self) -> None:
        self.check("Python version", self._python_version)
        self.check("Git repository", self._git_repository)
        self.check("Project manifest exists", self._manifest_exists, critical=True)

    def _python_version(self) -> str:
        current = ".".join(str(v) for v in sys.version_info[:3])
        minimum = self.config.preflight.min_python
        if sys.version_info[:3] < parse_version(minimum):
            raise CheckFailed(f"Python {current} too old, need {minimum}+")
        return f"Python {current}"

    def _git_repository(self) -> str:
        try:
            result = subprocess.run(
                ["git", "rev-parse", "--git-dir"],
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT,
            )
        except FileNotFoundError as e:
            raise CheckFailed("git is not installed") from e
        if result.returncode != 0:
            raise CheckFailed("Not a git repository")
        return "Git repository found"

    def _manifest_exists(self) -> str:
        for manifest in self.config.preflight.manifests:
            if (self.root / manifest).is_file():
                return f"{manifest} exists"
        raise CheckFailed(
            f"No project manifest found (looked for {', '.join(self.config.preflight.manifests)})"
        )

    # -- dependencies ----------------------------------------------------

    def check_dependencies(self) -> None:
        self.check(
            "Dependencies installed", self._dependencies_installed,
            category=Category.DEPENDENCY,
        )
        self.check("No vulnerabilities", self._audit, category=Category.DEPENDENCY)

    def _dependencies_installed(self) -> str:
        for dirname in self.config.preflight.dependency_dirs:
            if (self.root / dirname).is_dir():
                return f"Dependencies installed ({dirname})"
        raise CheckFailed(
            f"No dependency directory found ({', '.join(self.config.preflight.dependency_dirs)})"
            " - install dependencies first"
        )

    def _audit(self) -> str:
        command = self.config.preflight.audit_command
        if not command or shutil.which(command[0]) is None:
            return "Audit skipped (audit tool not installed)"

        try:
            result = subprocess.run(
                command,
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=self.config.preflight.audit_timeout,
            )
        except subprocess.TimeoutExpired:
            self.warn(f"Audit command timed out: {' '.join(command)}")
            return "Audit timed out"

        if result.returncode != 0:
            self.warn("Security vulnerabilities detected")
            self.state.record(self.table.finding(
                "preflight.audit",
                Category.DEPENDENCY,
                Severity.MEDIUM,
                "Security vulnerabilities detected by dependency audit",
                detail=" ".join(command),
            ))
            return "Vulnerabilities exist"
        return "No high vulnerabilities"

    # -- code quality ----------------------------------------------------

    def check_code_quality(self) -> None:
        self.check("No debug output in code", self._debug_output, category=Category.CODE_QUALITY)

    def _debug_output(self) -> str:
        files = collect_files(self.root, self.config.scan)
        for path in files:
            rel_path = str(path.relative_to(self.root))
            if is_test_file(rel_path):
                continue
            source = read_source(path)
            if source is None:
                continue
            for finding in self.registry.run("text", source, self.ctx, names=["debug-output"]):
                located = finding.model_copy(
                    update={"detail": f"{rel_path} ({finding.detail})"}
                )
                self.state.record(located)
                self.warn(f"{finding.message} in {rel_path}")
        return f"Code quality checked ({len(files)} files)"

    # -- run -------------------------------------------------------------

    def run(self) -> PreflightResult:
        logger.debug(f"Running preflight checks in {self.root}")
        aborted = None
        try:
            self.check_environment()
            self.check_dependencies()
            self.check_code_quality()
        except CriticalCheckFailed as e:
            logger.error(str(e))
            aborted = str(e)

        return PreflightResult(
            checks=list(self.checks),
            report=self.state.report(),
            warnings=list(self.warnings),
            aborted=aborted,
        )
