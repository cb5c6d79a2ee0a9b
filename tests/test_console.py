"""Tests for rich console rendering."""

from __future__ import annotations

import io

import pytest
from rich.console import Console as RichConsole

from changeguard.analyzers.simulation import Simulator
from changeguard.scoring import Category, Finding, ScoreState, Severity
from changeguard.ui.console import Console


@pytest.fixture
def buffer() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def console(buffer: io.StringIO) -> Console:
    return Console(RichConsole(file=buffer, width=200, color_system=None))


class TestMarkupIsLiteral:
    def test_messages(self, console: Console, buffer: io.StringIO):
        console.error("Unknown key: [bold]x")
        console.info("route [/api] done")
        assert "Unknown key: [bold]x" in buffer.getvalue()
        assert "route [/api] done" in buffer.getvalue()

    def test_findings(self, console: Console, buffer: io.StringIO):
        state = ScoreState()
        state.record(Finding(
            source="impact.security",
            category=Category.SECURITY,
            severity=Severity.MEDIUM,
            message="XSS vulnerability",
            detail="pages/[slug].js (line 3)",
            penalty=15,
        ))
        console.show_findings(state.report())
        assert "pages/[slug].js" in buffer.getvalue()

    def test_simulation(self, console: Console, buffer: io.StringIO, tmp_path, no_auth_env):
        sim = Simulator(tmp_path, dry_run=True)
        sim.simulate_file_operation("read", "[red]missing.txt")
        sim.simulate_api_call("/items/[/done]")
        console.show_simulation(sim.generate_report())
        out = buffer.getvalue()
        assert "[red]missing.txt" in out
        assert "/items/[/done]" in out
