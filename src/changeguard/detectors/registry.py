"""Detector registry.

A detector is a plain function that takes a subject (source text, a command
string, or a file path) plus a DetectionContext and returns zero or more
Findings. The scorer never sees how a finding was detected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from changeguard.config import ProjectConfig
from changeguard.exceptions import DetectorError
from changeguard.scoring.models import Category, Finding, Severity
from changeguard.scoring.scorer import PenaltyTable

logger = logging.getLogger("changeguard.detectors")

DETECTOR_KINDS = ("text", "command", "path")

DetectorFunc = Callable[[str, "DetectionContext"], list[Finding]]


@dataclass
class DetectorDefinition:
    """Metadata attached to a detector function."""
    name: str
    kind: str  # 'text', 'command' or 'path'
    description: str = ""
    categories: tuple[Category, ...] = ()


@dataclass
class DetectionContext:
    """What a detector may consult besides its subject."""
    config: ProjectConfig = field(default_factory=ProjectConfig)
    root: Path = field(default_factory=Path.cwd)
    table: PenaltyTable | None = None

    def __post_init__(self) -> None:
        if self.table is None:
            self.table = PenaltyTable(self.config.scoring)


class DetectorRegistry:
    """Registry of named detectors, grouped by the kind of subject they take."""

    def __init__(self) -> None:
        self._detectors: dict[str, DetectorFunc] = {}
        self._definitions: dict[str, DetectorDefinition] = {}

    def register(self, func: DetectorFunc, definition: DetectorDefinition | None = None) -> None:
        """Register a detector function (definition defaults to its @detector metadata)."""
        definition = definition or getattr(func, "_detector_definition", None)
        if definition is None:
            raise DetectorError(f"{func!r} has no detector definition")
        if definition.kind not in DETECTOR_KINDS:
            raise DetectorError(
                f"Detector '{definition.name}' has unknown kind '{definition.kind}'"
            )
        if definition.name in self._detectors:
            raise DetectorError(f"Detector '{definition.name}' is already registered")
        self._detectors[definition.name] = func
        self._definitions[definition.name] = definition

    def get(self, name: str) -> DetectorFunc | None:
        return self._detectors.get(name)

    def get_definition(self, name: str) -> DetectorDefinition | None:
        return self._definitions.get(name)

    def list_detectors(self, kind: str | None = None) -> list[str]:
        """List registered detector names, optionally of one kind."""
        return [
            name for name, defn in self._definitions.items()
            if kind is None or defn.kind == kind
        ]

    def run(
        self,
        kind: str,
        subject: str,
        ctx: DetectionContext,
        names: list[str] | None = None,
        categories: set[Category] | None = None,
    ) -> list[Finding]:
        """Run every detector of `kind` (optionally filtered) against `subject`.

        Findings come back in registration order. A detector that raises is
        reported as a low operational-risk finding instead of propagating.
        """
        findings: list[Finding] = []
        for name in self.list_detectors(kind):
            if names is not None and name not in names:
                continue
            defn = self._definitions[name]
            if categories is not None and not categories.intersection(defn.categories):
                continue

            func = self._detectors[name]
            try:
                findings.extend(func(subject, ctx))
            except Exception as e:
                logger.warning(f"Detector '{name}' failed on {subject!r}: {e}")
                findings.append(ctx.table.finding(
                    "detector-error",
                    Category.OPERATIONAL_RISK,
                    Severity.LOW,
                    f"Detector '{name}' failed: {e}",
                    detail=subject if kind != "text" else "",
                ))
        return findings


def detector(
    name: str,
    kind: str,
    description: str = "",
    categories: tuple[Category, ...] = (),
):
    """Decorator to mark a function as a detector.

    Usage:
        @detector("path-exists", "path", "Flags paths that do not exist")
        def path_exists(subject: str, ctx: DetectionContext) -> list[Finding]:
            ...
    """

    def decorator(func: Callable) -> Callable:
        func._detector_definition = DetectorDefinition(
            name=name,
            kind=kind,
            description=description or (func.__doc__ or "").strip().split("\n")[0],
            categories=categories,
        )
        return func

    return decorator
