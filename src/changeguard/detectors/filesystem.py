"""Detectors for file-system paths (relative paths resolve against the project root)."""

from __future__ import annotations

import os
from pathlib import Path

from changeguard.detectors.registry import DetectionContext, detector
from changeguard.scoring.models import Category, Finding, Severity


def resolve_path(path: str, root: Path) -> Path:
    p = Path(path)
    return p if p.is_absolute() else root / p


@detector(
    "path-exists", "path",
    "Path exists",
    categories=(Category.ENVIRONMENT,),
)
def path_exists(path: str, ctx: DetectionContext) -> list[Finding]:
    if resolve_path(path, ctx.root).exists():
        return []
    return [ctx.table.finding(
        "path-exists",
        Category.ENVIRONMENT,
        Severity.MEDIUM,
        "File does not exist",
        detail=path,
    )]


@detector(
    "path-writable", "path",
    "Parent directory is writable",
    categories=(Category.ENVIRONMENT,),
)
def path_writable(path: str, ctx: DetectionContext) -> list[Finding]:
    parent = resolve_path(path, ctx.root).parent
    if parent.is_dir() and os.access(parent, os.W_OK):
        return []
    return [ctx.table.finding(
        "path-writable",
        Category.ENVIRONMENT,
        Severity.HIGH,
        "No write permission",
        detail=path,
    )]
