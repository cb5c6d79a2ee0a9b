"""Simulation mode - dry-run file operations, commands and API calls.

Nothing is executed or written while simulating: each operation is checked
against the current environment and logged with whether it would succeed and
what risks it carries.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Literal

from pydantic import BaseModel, Field, field_validator

from changeguard.config import ProjectConfig
from changeguard.detectors import DetectionContext, DetectorRegistry, get_default_registry
from changeguard.exceptions import SimulationAborted
from changeguard.scoring import Category, Finding, PenaltyTable, ScoreReport, ScoreState, Severity

logger = logging.getLogger("changeguard.simulation")

FILE_OPERATIONS = ("create", "read", "update", "delete")
MUTATION_METHODS = ("POST", "PUT", "PATCH")
HTTP_METHODS = ("GET", "HEAD", "OPTIONS", "DELETE") + MUTATION_METHODS


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class OperationLog:
    """One simulated operation."""
    kind: str  # 'file', 'command' or 'api'
    target: str  # path, command line or endpoint
    operation: str = ""  # file operation or HTTP method
    timestamp: str = field(default_factory=_now)
    would_succeed: bool = True
    error: str | None = None
    risks: list[str] = field(default_factory=list)
    estimated_duration: int = 0
    expected_status: int | None = None


class FileStep(BaseModel):
    operation: Literal["create", "read", "update", "delete"]
    path: str
    content: str | None = None


class ApiStep(BaseModel):
    endpoint: str
    method: str = "GET"
    data: dict[str, Any] | None = None

    @field_validator("method")
    @classmethod
    def _known_method(cls, method: str) -> str:
        method = method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unknown HTTP method '{method}'")
        return method


class SimulationPlan(BaseModel):
    """A batch of operations to simulate, as read from a JSON plan file.

    {"files": [{"operation", "path", "content"?}], "commands": ["..."],
     "api": [{"endpoint", "method"?, "data"?}]}
    """

    files: list[FileStep] = Field(default_factory=list)
    commands: list[str] = Field(default_factory=list)
    api: list[ApiStep] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.files or self.commands or self.api)


@dataclass
class SimulationReport:
    """Outcome of a simulation run."""
    is_dry_run: bool
    report: ScoreReport
    operations: list[OperationLog]
    risks: list[str]

    @property
    def summary(self) -> dict[str, int]:
        return {
            "total_operations": len(self.operations),
            "would_succeed": sum(1 for o in self.operations if o.would_succeed),
            "would_fail": sum(1 for o in self.operations if not o.would_succeed),
            "risks_identified": len(self.risks),
        }

    @property
    def estimated_total_duration(self) -> int:
        return sum(o.estimated_duration for o in self.operations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_dry_run": self.is_dry_run,
            **self.report.model_dump(mode="json"),
            "summary": self.summary,
            "risks": self.risks,
            "operations": [asdict(o) for o in self.operations],
            "estimated_total_duration": self.estimated_total_duration,
        }


class Simulator:
    """Dry-runs a plan of operations and scores how safe it is to execute."""

    def __init__(
        self,
        root: Path | None = None,
        config: ProjectConfig | None = None,
        dry_run: bool | None = None,
        registry: DetectorRegistry | None = None,
    ) -> None:
        self.root = Path(root or Path.cwd()).resolve()
        self.config = config or ProjectConfig()
        if dry_run is None:
            dry_run = os.environ.get("DRY_RUN") == "true"
        self.is_dry_run = dry_run
        self.registry = registry or get_default_registry()
        self.table = PenaltyTable(self.config.scoring)
        self.ctx = DetectionContext(config=self.config, root=self.root, table=self.table)
        self.state = ScoreState.from_config(
            self.config.scoring, labels=self.config.simulation.labels
        )
        self.log: list[OperationLog] = []
        self.risks: list[str] = []

    def _record(self, log: OperationLog, findings: list[Finding]) -> None:
        for finding in findings:
            self.state.record(finding)
            log.risks.append(finding.message)

    def simulate_file_operation(
        self, operation: str, path: str, content: str | None = None
    ) -> OperationLog:
        if operation not in FILE_OPERATIONS:
            raise ValueError(
                f"Unknown file operation '{operation}' (expected one of {', '.join(FILE_OPERATIONS)})"
            )
        log = OperationLog(kind="file", target=path, operation=operation)

        if operation in ("read", "update", "delete"):
            missing = self.registry.run("path", path, self.ctx, names=["path-exists"])
            if missing:
                log.would_succeed = False
                log.error = missing[0].message
                self._record(log, missing)

        if operation in ("create", "update", "delete"):
            unwritable = self.registry.run("path", path, self.ctx, names=["path-writable"])
            if unwritable:
                log.would_succeed = False
                log.error = unwritable[0].message
                self._record(log, unwritable)

        if operation == "update" and content:
            self._record(
                log, self.registry.run("text", content, self.ctx, names=["module-surface"])
            )

        logger.debug(f"Simulated {operation} {path}: would_succeed={log.would_succeed}")
        self.log.append(log)
        return log

    def simulate_command(self, command: str) -> OperationLog:
        log = OperationLog(kind="command", target=command)

        dangerous = self.registry.run("command", command, self.ctx, names=["dangerous-command"])
        self._record(log, dangerous)
        self.risks.extend(f.message for f in dangerous)

        for fragment, seconds in self.config.simulation.durations.items():
            if fragment in command:
                log.estimated_duration = seconds

        missing = self.registry.run("command", command, self.ctx, names=["command-available"])
        if missing:
            log.would_succeed = False
            log.error = missing[0].message
            self._record(log, missing)

        logger.debug(f"Simulated command {command!r}: would_succeed={log.would_succeed}")
        self.log.append(log)
        return log

    def simulate_api_call(
        self, endpoint: str, method: str = "GET", data: dict | None = None
    ) -> OperationLog:
        method = method.upper()
        log = OperationLog(kind="api", target=endpoint, operation=method, expected_status=200)
        findings = []

        if not any(os.environ.get(var) for var in self.config.simulation.auth_env_vars):
            findings.append(self.table.finding(
                "simulation.no-auth",
                Category.ENVIRONMENT,
                Severity.MEDIUM,
                "No authentication token found",
                detail=endpoint,
            ))

        if method in MUTATION_METHODS and not data:
            findings.append(self.table.finding(
                "simulation.empty-payload",
                Category.OPERATIONAL_RISK,
                Severity.LOW,
                "Empty payload for mutation request",
                detail=f"{method} {endpoint}",
            ))

        previous = sum(1 for op in self.log if op.kind == "api" and op.target == endpoint)
        if previous > self.config.simulation.rate_limit_calls:
            findings.append(self.table.finding(
                "simulation.rate-limit",
                Category.OPERATIONAL_RISK,
                Severity.LOW,
                "Potential rate limiting",
                detail=endpoint,
            ))

        self._record(log, findings)
        self.log.append(log)
        return log

    def generate_report(self) -> SimulationReport:
        return SimulationReport(
            is_dry_run=self.is_dry_run,
            report=self.state.report(),
            operations=list(self.log),
            risks=list(self.risks),
        )

    def run_plan(self, plan: SimulationPlan | dict[str, Any]) -> SimulationReport:
        """Simulate every step of `plan`: files, then commands, then API calls.

        A dict is validated into a SimulationPlan first (pydantic
        ValidationError on a malformed plan).
        """
        if not isinstance(plan, SimulationPlan):
            plan = SimulationPlan.model_validate(plan)
        for step in plan.files:
            self.simulate_file_operation(step.operation, step.path, step.content)
        for command in plan.commands:
            self.simulate_command(command)
        for call in plan.api:
            self.simulate_api_call(call.endpoint, call.method, call.data)
        return self.generate_report()

    def execute(self, callback: Callable[[Simulator], Any]) -> Any:
        """Run `callback` against this simulator.

        In dry-run mode, returns the SimulationReport and raises
        SimulationAborted if its verdict is blocking. Otherwise returns the
        callback's own result.
        """
        if not self.is_dry_run:
            logger.info("Execution mode - making actual changes")
            return callback(self)

        logger.info("Simulation mode - no actual changes will be made")
        callback(self)
        report = self.generate_report()
        if report.report.is_blocking:
            raise SimulationAborted(report)
        return report
