"""Detectors that inspect a shell command before it runs."""

from __future__ import annotations

import shutil

from changeguard.detectors.registry import DetectionContext, detector
from changeguard.scoring.models import Category, Finding, Severity


@detector(
    "dangerous-command", "command",
    "Destructive shell or SQL fragments",
    categories=(Category.SECURITY,),
)
def dangerous_command(command: str, ctx: DetectionContext) -> list[Finding]:
    lowered = command.lower()
    return [
        ctx.table.finding(
            "dangerous-command",
            Category.SECURITY,
            Severity.CRITICAL,
            f"DANGEROUS: Contains '{dangerous}'",
            detail=command,
        )
        for dangerous in ctx.config.simulation.dangerous_commands
        if dangerous.lower() in lowered
    ]


@detector(
    "command-available", "command",
    "Executable is on PATH",
    categories=(Category.ENVIRONMENT,),
)
def command_available(command: str, ctx: DetectionContext) -> list[Finding]:
    parts = command.split()
    if not parts:
        return [ctx.table.finding(
            "command-available",
            Category.ENVIRONMENT,
            Severity.HIGH,
            "Empty command",
        )]

    base = parts[0]
    if shutil.which(base) is None:
        return [ctx.table.finding(
            "command-available",
            Category.ENVIRONMENT,
            Severity.HIGH,
            f"Command '{base}' not found",
            detail=command,
        )]
    return []
