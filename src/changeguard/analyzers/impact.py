"""Impact analysis - predict what a change touches before it lands.

Works on explicit file paths or on a git diff against a base branch. The
checks are heuristic: dependents are files that mention the changed file's
name on an import line, breaking changes are removed exports and changed
function signatures.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from changeguard.config import ProjectConfig
from changeguard.detectors import DetectionContext, DetectorRegistry, get_default_registry
from changeguard.diff import FileDiff, get_file_at_ref, get_git_diff, parse_diff
from changeguard.scan import collect_files, read_source
from changeguard.scoring import Category, PenaltyTable, ScoreReport, ScoreState, Severity

logger = logging.getLogger("changeguard.impact")

EXPORT_RE = re.compile(r"\bexport\b|module\.exports|^__all__\s*=", re.MULTILINE)
FUNCTION_RES = [
    re.compile(r"function\s+(\w+)\s*\([^)]*\)"),
    re.compile(r"def\s+(\w+)\s*\([^)]*\)"),
]
IMPORT_LINE_RE = re.compile(r"^\s*(?:import|from)\b|require\(|\bimport\(")


@dataclass
class FileImpact:
    """Direct consequences of changing one file."""
    path: str
    status: str  # 'new', 'modified', 'deleted'
    dependents: list[str] = field(default_factory=list)
    tests: list[str] = field(default_factory=list)

    @property
    def description(self) -> str:
        return f"{self.status.capitalize()} file: {self.path}"


@dataclass
class PerformanceImpact:
    bundle_size_kb: int = 0
    complexity: str = "low"
    risk: str = "low"


@dataclass
class ImpactResult:
    """Everything an impact analysis run produced."""
    report: ScoreReport
    direct: list[str] = field(default_factory=list)
    indirect: list[str] = field(default_factory=list)
    tests: list[str] = field(default_factory=list)
    breaking: list[str] = field(default_factory=list)
    security: list[str] = field(default_factory=list)
    performance: PerformanceImpact = field(default_factory=PerformanceImpact)

    @property
    def summary(self) -> dict[str, int]:
        return {
            "direct_changes": len(self.direct),
            "indirect_changes": len(self.indirect),
            "breaking_changes": len(self.breaking),
            "security_issues": len(self.security),
        }

    def to_dict(self) -> dict:
        return {
            **self.report.model_dump(mode="json"),
            "impacts": {
                "direct": self.direct,
                "indirect": self.indirect,
                "tests": self.tests,
                "breaking": self.breaking,
                "security": self.security,
                "performance": {
                    "bundle_size_kb": self.performance.bundle_size_kb,
                    "complexity": self.performance.complexity,
                    "risk": self.performance.risk,
                },
            },
            "summary": self.summary,
        }


def function_signatures(text: str) -> dict[str, str]:
    """Map function name -> normalized signature (first definition wins)."""
    signatures: dict[str, str] = {}
    for regex in FUNCTION_RES:
        for match in regex.finditer(text):
            name = match.group(1)
            if name not in signatures:
                signatures[name] = " ".join(match.group(0).split())
    return signatures


def candidate_test_files(path: str) -> list[str]:
    """Conventional test file locations for a source file."""
    p = Path(path)
    stem, suffix = p.stem, p.suffix
    names = [f"test_{stem}{suffix}", f"{stem}_test{suffix}", f"{stem}.test{suffix}", f"{stem}.spec{suffix}"]
    candidates = [str(p.with_name(n)) for n in names]
    candidates += [str(Path("tests") / n) for n in names]
    return list(dict.fromkeys(candidates))


class ImpactAnalyzer:
    """Folds the consequences of a set of file changes into one score."""

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
            self.config.scoring, labels=self.config.impact.labels
        )
        self.direct: list[str] = []
        self.indirect: list[str] = []
        self.tests: list[str] = []
        self.breaking: list[str] = []
        self.security: list[str] = []
        self.performance = PerformanceImpact()
        self._source_files: list[Path] | None = None

    def analyze_file_change(self, path: str, status: str | None = None) -> FileImpact:
        """Record a changed file, the files that import it, and its tests."""
        if status is None:
            status = "modified" if (self.root / path).exists() else "new"
        impact = FileImpact(path=path, status=status)
        self.direct.append(impact.description)

        impact.dependents = self._find_dependents(path)
        for dependent in impact.dependents:
            self.indirect.append(f"Affected: {dependent}")
            self.state.record(self.table.finding(
                "impact.dependent",
                Category.OPERATIONAL_RISK,
                Severity.LOW,
                f"{dependent} depends on {path}",
                detail=dependent,
            ))

        impact.tests = [t for t in candidate_test_files(path) if (self.root / t).is_file()]
        self.tests.extend(t for t in impact.tests if t not in self.tests)
        return impact

    def analyze_performance(self, changes: list[str]) -> PerformanceImpact:
        """Estimate bundle growth and complexity from changed lines."""
        impact = PerformanceImpact()
        per_import = self.config.impact.bundle_kb_per_import
        for change in changes:
            if "import" in change or "require" in change:
                impact.bundle_size_kb += per_import

        if len(changes) > self.config.impact.complexity_threshold:
            impact.complexity = "high"
            impact.risk = "medium"
            self.state.record(self.table.finding(
                "impact.complexity",
                Category.OPERATIONAL_RISK,
                Severity.MEDIUM,
                f"Large change ({len(changes)} lines)",
            ))

        self.performance = PerformanceImpact(
            bundle_size_kb=self.performance.bundle_size_kb + impact.bundle_size_kb,
            complexity="high" if "high" in (self.performance.complexity, impact.complexity) else "low",
            risk="medium" if "medium" in (self.performance.risk, impact.risk) else "low",
        )
        return impact

    def analyze_security(self, code: str, source: str = "") -> list[str]:
        """Run the security detectors over `code`; returns the issue messages."""
        findings = self.registry.run(
            "text", code, self.ctx, categories={Category.SECURITY}
        )
        messages = []
        for finding in findings:
            if source:
                finding = finding.model_copy(
                    update={"detail": f"{source} ({finding.detail})"}
                )
            self.state.record(finding)
            messages.append(f"{finding.message} in {source}" if source else finding.message)
        self.security.extend(messages)
        return messages

    def analyze_breaking_changes(self, before: str, after: str, source: str = "") -> list[str]:
        """Compare two versions of a file for removed exports and changed signatures."""
        breaking = []

        if EXPORT_RE.search(before) and not EXPORT_RE.search(after):
            breaking.append("Removed exports - breaking change")

        before_funcs = function_signatures(before)
        after_funcs = function_signatures(after)
        for name, signature in before_funcs.items():
            if name not in after_funcs:
                breaking.append(f"Function removed: {name}")
            elif after_funcs[name] != signature:
                breaking.append(f"Function signature changed: {name}")

        for message in breaking:
            self.state.record(self.table.finding(
                "impact.breaking",
                Category.BREAKING_CHANGE,
                Severity.HIGH,
                message,
                detail=source,
            ))
        suffix = f" ({source})" if source else ""
        self.breaking.extend(f"{m}{suffix}" for m in breaking)
        return breaking

    def analyze_files(self, paths: list[str]) -> None:
        """Analyze files as they currently are on disk.

        Each file counts as one change for the performance estimate.
        """
        changes: list[str] = []
        for path in paths:
            self.analyze_file_change(path)
            text = read_source(self.root / path)
            if text is None:
                continue
            self.analyze_security(text, source=path)
            changes.append(text)
        self.analyze_performance(changes)

    def analyze_diff(self, base: str | None = None) -> list[FileDiff]:
        """Analyze the git diff between `base` and HEAD."""
        base = base or self.config.impact.base
        diff_text = get_git_diff(self.root, base)
        if not diff_text:
            logger.info(f"No changes against {base}")
            return []

        file_diffs = parse_diff(diff_text)
        changed_lines: list[str] = []
        for fd in file_diffs:
            status = {"added": "new", "deleted": "deleted"}.get(fd.status, "modified")
            self.analyze_file_change(fd.path, status=status)

            before = get_file_at_ref(self.root, base, fd.old_path or fd.path)
            if fd.status == "deleted":
                after = ""
            else:
                after = read_source(self.root / fd.path) or ""
            if before is not None:
                self.analyze_breaking_changes(before, after, source=fd.path)

            added = fd.added_text
            if added:
                self.analyze_security(added, source=fd.path)
            changed_lines.extend(fd.changed_lines)

        self.analyze_performance(changed_lines)
        return file_diffs

    def result(self) -> ImpactResult:
        return ImpactResult(
            report=self.state.report(),
            direct=list(self.direct),
            indirect=list(self.indirect),
            tests=list(self.tests),
            breaking=list(self.breaking),
            security=list(self.security),
            performance=self.performance,
        )

    def _find_dependents(self, path: str) -> list[str]:
        """Source files that reference `path`'s module name on an import line."""
        stem = Path(path).stem
        if not stem:
            return []
        name_re = re.compile(rf"\b{re.escape(stem)}\b")

        if self._source_files is None:
            self._source_files = collect_files(self.root, self.config.scan)

        target = Path(path).as_posix()
        dependents = []
        for file_path in self._source_files:
            rel_path = file_path.relative_to(self.root).as_posix()
            if rel_path == target:
                continue
            source = read_source(file_path)
            if source is None:
                continue
            for line in source.splitlines():
                if IMPORT_LINE_RE.search(line) and name_re.search(line):
                    dependents.append(rel_path)
                    break
        return dependents
