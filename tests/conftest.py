"""Shared test fixtures for ChangeGuard."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary project with a manifest and a few source files."""
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "sample"\nversion = "0.1.0"\n')

    # Main module
    (tmp_path / "main.py").write_text('''"""Main application entry point."""

from utils import helper_function, calculate_total
from models import User


def main():
    """Run the main application."""
    user = User("Alice", "alice@example.com")
    total = calculate_total(["widget", "gadget"])
    print(f"Order total: {helper_function(total)}")
    return user
''')

    # Utils module
    (tmp_path / "utils.py").write_text('''"""Utility functions."""

TAX_RATE = 0.08


def helper_function(value):
    """Apply formatting to a value."""
    return f"${value:.2f}"


def calculate_total(items):
    """Calculate total price for a list of items."""
    prices = {"widget": 9.99, "gadget": 24.99}
    subtotal = sum(prices.get(item, 0) for item in items)
    return subtotal + subtotal * TAX_RATE
''')

    # Models module
    (tmp_path / "models.py").write_text('''"""Data models."""


class User:
    """Represents a user in the system."""

    def __init__(self, name: str, email: str):
        self.name = name
        self.email = email
''')

    # API package
    api_dir = tmp_path / "api"
    api_dir.mkdir()
    (api_dir / "__init__.py").write_text('"""API package."""\n')
    (api_dir / "routes.py").write_text('''"""API routes."""

from models import User


def get_user(name):
    return User(name, f"{name}@example.com")
''')

    # Tests
    tests_dir = tmp_path / "tests"
    tests_dir.mkdir()
    (tests_dir / "test_utils.py").write_text('''from utils import calculate_total


def test_total():
    print("debugging is fine in tests")
    assert calculate_total([]) == 0
''')

    # A small JS frontend
    web_dir = tmp_path / "web"
    web_dir.mkdir()
    (web_dir / "helpers.js").write_text('''function formatPrice(value) {
  return value.toFixed(2);
}

module.exports = { formatPrice };
''')
    (web_dir / "app.js").write_text('''const { formatPrice } = require('./helpers');

console.log(formatPrice(3));
''')

    return tmp_path


@pytest.fixture
def no_auth_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove environment variables the simulator looks at."""
    for var in ("API_TOKEN", "AUTH_TOKEN", "DRY_RUN"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def fake_tools(monkeypatch: pytest.MonkeyPatch) -> dict:
    """Stub out subprocess.run and shutil.which.

    Every executable is "installed" and git commands succeed. Tests can flip
    state["git_ok"] or set state["audit"] to "vulnerable" or "timeout".
    """
    state = {"git_ok": True, "audit": "ok", "calls": []}

    def fake_run(cmd, **kwargs):
        state["calls"].append(list(cmd))
        if cmd[0] == "git":
            code = 0 if state["git_ok"] else 128
            return subprocess.CompletedProcess(cmd, code, ".git\n", "")
        if state["audit"] == "timeout":
            raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout", 0))
        code = 1 if state["audit"] == "vulnerable" else 0
        return subprocess.CompletedProcess(cmd, code, "", "")

    monkeypatch.setattr(subprocess, "run", fake_run)
    monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")
    return state
