"""Rich-powered console output for ChangeGuard."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from changeguard import __version__
from changeguard.scoring.models import ScoreReport, Severity

if TYPE_CHECKING:
    from changeguard.analyzers.impact import ImpactResult
    from changeguard.analyzers.preflight import PreflightResult
    from changeguard.analyzers.simulation import SimulationReport

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "dim",
}


def _confidence_color(confidence: int) -> str:
    if confidence >= 90:
        return "green"
    if confidence >= 70:
        return "yellow"
    return "red"


class Console:
    """Terminal output for ChangeGuard using Rich."""

    def __init__(self, console: RichConsole | None = None) -> None:
        self.console = console or RichConsole()

    def banner(self, title: str) -> None:
        self.console.print(
            Panel(
                f"[bold cyan]ChangeGuard[/bold cyan] [dim]v{__version__}[/dim]\n"
                f"[dim]{title}[/dim]",
                border_style="cyan",
                padding=(0, 2),
            )
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {escape(message)}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {escape(message)}")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {escape(message)}")

    def show_report(self, report: ScoreReport, title: str = "Report") -> None:
        """Confidence, risk level and recommendation in one panel."""
        color = _confidence_color(report.confidence)
        verdict = "blocking" if report.is_blocking else "advisory"
        self.console.print(
            Panel(
                f"[bold]Confidence:[/bold] [{color}]{report.confidence}%[/{color}]\n"
                f"[bold]Risk Level:[/bold] {report.risk_level.value}\n"
                f"[bold]Recommendation:[/bold] [{color}]{escape(report.recommendation.label)}"
                f"[/{color}] [dim]({verdict})[/dim]",
                title=f"[bold]{title}[/bold]",
                border_style=color,
            )
        )

    def show_findings(self, report: ScoreReport) -> None:
        if not report.findings:
            return
        table = Table(title="Findings", border_style="cyan")
        table.add_column("Severity", style="bold")
        table.add_column("Category")
        table.add_column("Finding")
        table.add_column("Penalty", justify="right", style="cyan")
        table.add_column("Detail", style="dim")

        for f in report.findings:
            style = SEVERITY_STYLES[f.severity]
            table.add_row(
                f"[{style}]{f.severity.value}[/{style}]",
                f.category.value,
                escape(f.message),
                f"-{f.penalty}",
                escape(f.detail),
            )
        self.console.print(table)

    def show_preflight(self, result: PreflightResult) -> None:
        table = Table(title="Preflight Checks", border_style="cyan")
        table.add_column("", width=2)
        table.add_column("Check", style="bold")
        table.add_column("Result")

        for check in result.checks:
            icon = "[green]✓[/green]" if check.passed else "[red]✗[/red]"
            table.add_row(icon, escape(check.name), escape(check.detail))
        self.console.print(table)

        for warning in result.warnings:
            self.warning(warning)
        if result.aborted:
            self.error(result.aborted)

        self.console.print(f"Passed: {result.passed}/{len(result.checks)}")
        self.show_report(result.report, title="Preflight Check Report")

    def show_impact(self, result: ImpactResult) -> None:
        self.show_report(result.report, title="Impact Analysis Report")

        table = Table(title="Summary", border_style="cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Count", justify="right", style="cyan")
        for key, value in result.summary.items():
            table.add_row(key.replace("_", " ").capitalize(), str(value))
        table.add_row("Estimated bundle growth (KB)", str(result.performance.bundle_size_kb))
        self.console.print(table)

        for heading, items in (
            ("Direct changes", result.direct),
            ("Affected files", result.indirect),
            ("Related tests", result.tests),
            ("Breaking changes", result.breaking),
            ("Security concerns", result.security),
        ):
            if items:
                self.console.print(f"\n[bold]{heading}:[/bold]")
                for item in items:
                    self.console.print(f"  - {escape(item)}")

    def show_simulation(self, sim: SimulationReport) -> None:
        mode = "SIMULATION MODE" if sim.is_dry_run else "EXECUTION MODE"
        self.info(f"{mode} - {len(sim.operations)} operation(s)")

        table = Table(title="Simulated Operations", border_style="cyan")
        table.add_column("", width=2)
        table.add_column("Kind", style="bold")
        table.add_column("Operation")
        table.add_column("Target")
        table.add_column("Est. (s)", justify="right")
        table.add_column("Notes", style="dim")

        for op in sim.operations:
            icon = "[green]✓[/green]" if op.would_succeed else "[red]✗[/red]"
            notes = "; ".join(([op.error] if op.error else []) + op.risks)
            table.add_row(
                icon, op.kind, escape(op.operation), escape(op.target),
                str(op.estimated_duration), escape(notes),
            )
        self.console.print(table)
        self.console.print(
            f"Estimated total duration: {sim.estimated_total_duration}s"
        )
        self.show_report(sim.report, title="Simulation Report")
