"""Tests for the detector registry and built-in detectors."""

from __future__ import annotations

from pathlib import Path

import pytest

from changeguard.detectors import (
    DetectionContext,
    DetectorRegistry,
    detector,
    get_default_registry,
)
from changeguard.exceptions import DetectorError
from changeguard.scoring import Category, Severity


@pytest.fixture
def registry() -> DetectorRegistry:
    return get_default_registry()


@pytest.fixture
def ctx(tmp_path: Path) -> DetectionContext:
    return DetectionContext(root=tmp_path)


class TestRegistry:
    def test_default_detectors(self, registry: DetectorRegistry):
        assert registry.list_detectors("text") == [
            "security-patterns", "module-surface", "debug-output",
        ]
        assert registry.list_detectors("command") == ["dangerous-command", "command-available"]
        assert registry.list_detectors("path") == ["path-exists", "path-writable"]

    def test_lookup(self, registry: DetectorRegistry):
        from changeguard.detectors.filesystem import path_exists

        assert registry.get("path-exists") is path_exists
        assert registry.get("nope") is None
        assert registry.get_definition("nope") is None

    def test_definition_metadata(self, registry: DetectorRegistry):
        defn = registry.get_definition("security-patterns")
        assert defn.kind == "text"
        assert Category.SECURITY in defn.categories
        assert defn.description

    def test_duplicate_registration(self, registry: DetectorRegistry):
        from changeguard.detectors.patterns import debug_output

        with pytest.raises(DetectorError):
            registry.register(debug_output)

    def test_undecorated_function(self):
        with pytest.raises(DetectorError):
            DetectorRegistry().register(lambda subject, ctx: [])

    def test_unknown_kind(self):
        @detector("weird", "socket")
        def weird(subject, ctx):
            return []

        with pytest.raises(DetectorError):
            DetectorRegistry().register(weird)

    def test_failing_detector_becomes_finding(self, ctx: DetectionContext):
        @detector("broken", "text", "Always fails")
        def broken(subject, ctx):
            raise RuntimeError("boom")

        registry = DetectorRegistry()
        registry.register(broken)
        findings = registry.run("text", "anything", ctx)
        assert len(findings) == 1
        assert findings[0].category == Category.OPERATIONAL_RISK
        assert "broken" in findings[0].message
        assert "boom" in findings[0].message

    def test_custom_detector(self, ctx: DetectionContext):
        @detector("todo-marker", "text", categories=(Category.CODE_QUALITY,))
        def todo_marker(subject, ctx):
            if "TODO" in subject:
                return [ctx.table.finding("todo-marker", Category.CODE_QUALITY, Severity.LOW, "TODO left")]
            return []

        registry = DetectorRegistry()
        registry.register(todo_marker)
        assert registry.run("text", "x = 1  # TODO", ctx)[0].penalty == 5
        assert registry.run("text", "x = 1", ctx) == []

    def test_name_filter(self, registry: DetectorRegistry, ctx: DetectionContext):
        text = "eval(data)\nconsole.log(data)"
        findings = registry.run("text", text, ctx, names=["debug-output"])
        assert [f.source for f in findings] == ["debug-output"]

    def test_category_filter(self, registry: DetectorRegistry, ctx: DetectionContext):
        text = "eval(data)\nconsole.log(data)\nmodule.exports = data"
        findings = registry.run("text", text, ctx, categories={Category.SECURITY})
        assert {f.category for f in findings} == {Category.SECURITY}


class TestSecurityPatterns:
    def test_eval(self, registry: DetectorRegistry, ctx: DetectionContext):
        findings = registry.run("text", "result = eval(user_input)", ctx, names=["security-patterns"])
        assert [f.message for f in findings] == ["Code injection vulnerability"]
        assert findings[0].penalty == 15
        assert findings[0].severity == Severity.MEDIUM

    def test_inner_html(self, registry: DetectorRegistry, ctx: DetectionContext):
        findings = registry.run("text", "el.innerHTML = html;", ctx, names=["security-patterns"])
        assert [f.message for f in findings] == ["XSS vulnerability"]

    def test_environment_access(self, registry: DetectorRegistry, ctx: DetectionContext):
        for text in ("const url = process.env.URL;", "home = os.environ['HOME']"):
            findings = registry.run("text", text, ctx, names=["security-patterns"])
            assert [f.message for f in findings] == ["Potential secret exposure"]

    def test_secret_identifiers(self, registry: DetectorRegistry, ctx: DetectionContext):
        findings = registry.run("text", "DB_PASSWORD = load()", ctx, names=["security-patterns"])
        assert [f.message for f in findings] == ["Sensitive data handling"]

    def test_line_number_in_detail(self, registry: DetectorRegistry, ctx: DetectionContext):
        findings = registry.run("text", "a = 1\nb = 2\nc = eval(b)", ctx, names=["security-patterns"])
        assert findings[0].detail.startswith("line 3")

    def test_clean_code(self, registry: DetectorRegistry, ctx: DetectionContext):
        text = "def add(a, b):\n    return a + b\n"
        assert registry.run("text", text, ctx, names=["security-patterns"]) == []


class TestModuleSurface:
    @pytest.mark.parametrize(
        "text",
        [
            "export default App;",
            "module.exports = { run };",
            "import React from 'react';",
            "const fs = require('fs');",
            "from os import path",
            "__all__ = ['run']",
        ],
    )
    def test_detects(self, text: str, registry: DetectorRegistry, ctx: DetectionContext):
        findings = registry.run("text", text, ctx, names=["module-surface"])
        assert len(findings) == 1
        assert findings[0].category == Category.BREAKING_CHANGE
        assert findings[0].message == "Potential breaking change in exports/imports"
        assert findings[0].penalty == 5

    def test_plain_code(self, registry: DetectorRegistry, ctx: DetectionContext):
        assert registry.run("text", "x = compute(1)", ctx, names=["module-surface"]) == []


class TestDebugOutput:
    def test_console_log(self, registry: DetectorRegistry, ctx: DetectionContext):
        findings = registry.run("text", "console.log('x')", ctx, names=["debug-output"])
        assert len(findings) == 1
        assert findings[0].detail == "line 1"
        assert findings[0].penalty == 0

    def test_print(self, registry: DetectorRegistry, ctx: DetectionContext):
        text = "def f():\n    print('x')\n"
        findings = registry.run("text", text, ctx, names=["debug-output"])
        assert findings[0].detail == "line 2"

    def test_no_debug_output(self, registry: DetectorRegistry, ctx: DetectionContext):
        assert registry.run("text", "blueprint(x)", ctx, names=["debug-output"]) == []


class TestCommandDetectors:
    def test_dangerous_command(self, registry: DetectorRegistry, ctx: DetectionContext):
        findings = registry.run("command", "RM -RF /tmp/x", ctx, names=["dangerous-command"])
        assert len(findings) == 1
        assert findings[0].message == "DANGEROUS: Contains 'rm -rf'"
        assert findings[0].severity == Severity.CRITICAL
        assert findings[0].category == Category.SECURITY
        assert findings[0].penalty == 40

    def test_multiple_dangerous_fragments(self, registry: DetectorRegistry, ctx: DetectionContext):
        findings = registry.run(
            "command", "psql -c 'DROP DATABASE prod; TRUNCATE users'", ctx,
            names=["dangerous-command"],
        )
        assert len(findings) == 2

    def test_safe_command(self, registry: DetectorRegistry, ctx: DetectionContext):
        assert registry.run("command", "ls -la", ctx, names=["dangerous-command"]) == []

    def test_command_not_found(self, registry: DetectorRegistry, ctx: DetectionContext, monkeypatch):
        monkeypatch.setattr("shutil.which", lambda name: None)
        findings = registry.run("command", "frobnicate --all", ctx, names=["command-available"])
        assert [f.message for f in findings] == ["Command 'frobnicate' not found"]
        assert findings[0].penalty == 25

    def test_command_found(self, registry: DetectorRegistry, ctx: DetectionContext, monkeypatch):
        monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")
        assert registry.run("command", "npm test", ctx, names=["command-available"]) == []

    def test_empty_command(self, registry: DetectorRegistry, ctx: DetectionContext):
        findings = registry.run("command", "   ", ctx, names=["command-available"])
        assert [f.message for f in findings] == ["Empty command"]


class TestPathDetectors:
    def test_missing_path(self, registry: DetectorRegistry, ctx: DetectionContext):
        findings = registry.run("path", "nope.txt", ctx, names=["path-exists"])
        assert [f.message for f in findings] == ["File does not exist"]
        assert findings[0].penalty == 20

    def test_existing_path(self, registry: DetectorRegistry, ctx: DetectionContext, tmp_path: Path):
        (tmp_path / "here.txt").write_text("x")
        assert registry.run("path", "here.txt", ctx, names=["path-exists"]) == []

    def test_absolute_path(self, registry: DetectorRegistry, ctx: DetectionContext, tmp_path: Path):
        target = tmp_path / "abs.txt"
        target.write_text("x")
        assert registry.run("path", str(target), ctx, names=["path-exists"]) == []

    def test_writable_directory(self, registry: DetectorRegistry, ctx: DetectionContext):
        assert registry.run("path", "new.txt", ctx, names=["path-writable"]) == []

    def test_missing_parent_directory(self, registry: DetectorRegistry, ctx: DetectionContext):
        findings = registry.run("path", "missing/dir/new.txt", ctx, names=["path-writable"])
        assert [f.message for f in findings] == ["No write permission"]
        assert findings[0].penalty == 30
