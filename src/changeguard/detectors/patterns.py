"""Regex detectors that run over source text."""

from __future__ import annotations

import re

from changeguard.detectors.registry import DetectionContext, detector
from changeguard.scoring.models import Category, Finding, Severity

# (pattern, message) pairs; each pattern yields at most one finding per text
SECURITY_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"eval\("), "Code injection vulnerability"),
    (re.compile(r"innerHTML\s*="), "XSS vulnerability"),
    (re.compile(r"process\.env|os\.environ"), "Potential secret exposure"),
    (re.compile(r"password|token|secret|key", re.IGNORECASE), "Sensitive data handling"),
]

MODULE_SURFACE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"export\s+default"),
    re.compile(r"module\.exports"),
    re.compile(r"import\s+.+\s+from"),
    re.compile(r"require\("),
    re.compile(r"^\s*from\s+\S+\s+import\s", re.MULTILINE),
    re.compile(r"^__all__\s*=", re.MULTILINE),
]

DEBUG_OUTPUT_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"console\.log"),
    re.compile(r"^\s*print\(", re.MULTILINE),
]


def _line_of(text: str, match: re.Match[str]) -> int:
    return text.count("\n", 0, match.start()) + 1


@detector(
    "security-patterns", "text",
    "Dangerous calls and secret-like identifiers",
    categories=(Category.SECURITY,),
)
def security_patterns(text: str, ctx: DetectionContext) -> list[Finding]:
    findings = []
    for pattern, message in SECURITY_PATTERNS:
        match = pattern.search(text)
        if match:
            findings.append(ctx.table.finding(
                "security-patterns",
                Category.SECURITY,
                Severity.MEDIUM,
                message,
                detail=f"line {_line_of(text, match)}: {match.group(0)}",
            ))
    return findings


@detector(
    "module-surface", "text",
    "Export and import statements that other modules may depend on",
    categories=(Category.BREAKING_CHANGE,),
)
def module_surface(text: str, ctx: DetectionContext) -> list[Finding]:
    findings = []
    for pattern in MODULE_SURFACE_PATTERNS:
        match = pattern.search(text)
        if match:
            findings.append(ctx.table.finding(
                "module-surface",
                Category.BREAKING_CHANGE,
                Severity.LOW,
                "Potential breaking change in exports/imports",
                detail=f"line {_line_of(text, match)}: {match.group(0).strip()}",
            ))
    return findings


@detector(
    "debug-output", "text",
    "Leftover console.log / print debugging",
    categories=(Category.CODE_QUALITY,),
)
def debug_output(text: str, ctx: DetectionContext) -> list[Finding]:
    for pattern in DEBUG_OUTPUT_PATTERNS:
        match = pattern.search(text)
        if match:
            return [ctx.table.finding(
                "debug-output",
                Category.CODE_QUALITY,
                Severity.LOW,
                f"{match.group(0).strip()} found in code",
                detail=f"line {_line_of(text, match)}",
            )]
    return []
