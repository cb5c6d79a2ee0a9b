"""Markdown rendering of score reports.

Generates GitHub-flavored markdown suitable for a PR comment or a CI job
summary:
  - Confidence badge (color-coded)
  - Findings table
  - Tool-specific sections (breaking changes, affected files, ...)
"""

from __future__ import annotations

from changeguard.scoring.models import ScoreReport, Severity

SEVERITY_ORDER = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


def render_markdown(
    report: ScoreReport,
    title: str = "ChangeGuard Report",
    sections: dict[str, list[str]] | None = None,
) -> str:
    """Render a score report as markdown."""
    lines: list[str] = [f"## {title}", ""]

    emoji, _ = confidence_badge(report.confidence)
    verdict = "blocking" if report.is_blocking else "advisory"
    lines.append(f"| {emoji} Confidence | Risk | Recommendation | Findings |")
    lines.append("|:---:|:---:|:---|:---:|")
    lines.append(
        f"| **{report.confidence}%** | "
        f"{report.risk_level.value} | "
        f"{report.recommendation.label} ({verdict}) | "
        f"{len(report.findings)} |"
    )
    lines.append("")

    if report.findings:
        lines.append("### Findings")
        lines.append("")
        lines.append("| Severity | Category | Finding | Penalty | Detail |")
        lines.append("|:---------|:---------|:--------|:-------:|:-------|")
        ordered = sorted(report.findings, key=lambda f: SEVERITY_ORDER[f.severity])
        for f in ordered:
            detail = f"`{_escape(f.detail)}`" if f.detail else ""
            lines.append(
                f"| {f.severity.value} | {f.category.value} | {_escape(f.message)} | "
                f"-{f.penalty} | {detail} |"
            )
        lines.append("")
    else:
        lines.append("> No findings.")
        lines.append("")

    for heading, items in (sections or {}).items():
        if not items:
            continue
        lines.append(f"### {heading}")
        lines.append("")
        for item in items[:25]:
            lines.append(f"- {item}")
        if len(items) > 25:
            lines.append(f"- ... and {len(items) - 25} more")
        lines.append("")

    lines.append(_footer())
    return "\n".join(lines)


def confidence_badge(confidence: int) -> tuple[str, str]:
    """Return (emoji, color) for a confidence value."""
    if confidence >= 90:
        return ("🟢", "green")
    elif confidence >= 70:
        return ("🟡", "yellow")
    elif confidence >= 50:
        return ("🟠", "orange")
    else:
        return ("🔴", "red")


def _escape(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def _footer() -> str:
    return "---\n*Generated by ChangeGuard - heuristic checks, review before merging*"
