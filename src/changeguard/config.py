"""Configuration management for ChangeGuard."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from changeguard.exceptions import ConfigError

CHANGEGUARD_DIR = ".changeguard"
CONFIG_FILE = "config.json"


class SeverityPenalties(BaseModel):
    """Default confidence penalty per severity class."""

    critical: int = Field(default=40, ge=0)
    high: int = Field(default=25, ge=0)
    medium: int = Field(default=15, ge=0)
    low: int = Field(default=5, ge=0)


class TierConfig(BaseModel):
    """One recommendation tier: applies when confidence >= min_confidence."""

    min_confidence: int | None = None  # None = catch-all bottom tier
    label: str
    verdict: Literal["advisory", "blocking"] = "advisory"


def _default_tiers() -> list[TierConfig]:
    return [
        TierConfig(min_confidence=90, label="SAFE TO PROCEED", verdict="advisory"),
        TierConfig(min_confidence=70, label="REVIEW REQUIRED", verdict="advisory"),
        TierConfig(min_confidence=50, label="DETAILED REVIEW REQUIRED", verdict="blocking"),
        TierConfig(min_confidence=None, label="DO NOT PROCEED", verdict="blocking"),
    ]


def check_tier_bounds(bounds: list[int | None]) -> None:
    """Raise ValueError unless `bounds` is strictly descending and ends in None."""
    if not bounds:
        raise ValueError("Recommendation policy needs at least one tier")
    if bounds[-1] is not None:
        raise ValueError("The last recommendation tier must have no minimum")
    upper = bounds[:-1]
    if any(b is None for b in upper):
        raise ValueError("Only the last recommendation tier may omit its minimum")
    if upper != sorted(upper, reverse=True) or len(set(upper)) != len(upper):
        raise ValueError(f"Recommendation tiers must be strictly descending, got {upper}")


class ScoringConfig(BaseModel):
    """Confidence scoring and recommendation policy."""

    initial_confidence: int = 100
    clamp_at_zero: bool = True
    penalties: SeverityPenalties = Field(default_factory=SeverityPenalties)
    # Per-check penalty overrides, keyed by check id
    overrides: dict[str, int] = Field(
        default_factory=lambda: {
            "preflight.critical": 30,
            "preflight.check": 10,
            "preflight.audit": 0,
            "debug-output": 0,
            "security-patterns": 15,
            "module-surface": 5,
            "dangerous-command": 40,
            "command-available": 25,
            "path-exists": 20,
            "path-writable": 30,
            "impact.dependent": 0,
            "impact.complexity": 0,
            "simulation.no-auth": 15,
            "simulation.empty-payload": 10,
            "simulation.rate-limit": 5,
        }
    )
    medium_risk_threshold: int = 5
    tiers: list[TierConfig] = Field(default_factory=_default_tiers)

    @field_validator("tiers")
    @classmethod
    def _check_tiers(cls, tiers: list[TierConfig]) -> list[TierConfig]:
        check_tier_bounds([t.min_confidence for t in tiers])
        return tiers


class ScanConfig(BaseModel):
    """Which files the source scanners look at."""

    exclude_patterns: list[str] = Field(
        default_factory=lambda: [
            "node_modules",
            "__pycache__",
            ".git",
            ".changeguard",
            "dist",
            "build",
            ".venv",
            "venv",
            ".env",
            "*.pyc",
            "*.min.js",
            "*.map",
            "*.lock",
            "package-lock.json",
            "yarn.lock",
        ]
    )
    extensions: list[str] = Field(
        default_factory=lambda: [".py", ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"]
    )
    max_file_size_kb: int = 500


class PreflightConfig(BaseModel):
    """Preflight check configuration."""

    min_python: str = "3.10"
    manifests: list[str] = Field(
        default_factory=lambda: ["pyproject.toml", "package.json", "setup.py"]
    )
    dependency_dirs: list[str] = Field(
        default_factory=lambda: [".venv", "venv", "node_modules"]
    )
    audit_command: list[str] = Field(default_factory=lambda: ["pip-audit"])
    audit_timeout: int = 120
    labels: dict[str, str] = Field(
        default_factory=lambda: {"REVIEW REQUIRED": "PROCEED WITH CAUTION"}
    )


class ImpactConfig(BaseModel):
    """Impact analysis configuration."""

    base: str = "main"
    complexity_threshold: int = 10
    bundle_kb_per_import: int = 10
    labels: dict[str, str] = Field(default_factory=dict)


class SimulationConfig(BaseModel):
    """Dry-run simulation configuration."""

    dangerous_commands: list[str] = Field(
        default_factory=lambda: ["rm -rf", "drop database", "delete from", "truncate"]
    )
    # Substring -> estimated seconds; the last matching entry wins
    durations: dict[str, int] = Field(
        default_factory=lambda: {
            "npm install": 30,
            "pip install": 30,
            "npm test": 60,
            "pytest": 60,
            "build": 120,
        }
    )
    auth_env_vars: list[str] = Field(default_factory=lambda: ["API_TOKEN", "AUTH_TOKEN"])
    rate_limit_calls: int = 10
    labels: dict[str, str] = Field(
        default_factory=lambda: {
            "REVIEW REQUIRED": "PROCEED WITH CAUTION",
            "DETAILED REVIEW REQUIRED": "REVIEW REQUIRED",
        }
    )


class ProjectConfig(BaseModel):
    """Full project configuration."""

    name: str = ""
    root_path: str = "."
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    preflight: PreflightConfig = Field(default_factory=PreflightConfig)
    impact: ImpactConfig = Field(default_factory=ImpactConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from `start` looking for a .changeguard directory."""
    current = (start or Path.cwd()).resolve()
    while current != current.parent:
        if (current / CHANGEGUARD_DIR).is_dir():
            return current
        current = current.parent
    if (current / CHANGEGUARD_DIR).is_dir():
        return current
    return None


def get_changeguard_dir(root: Path) -> Path:
    """Get the .changeguard directory for a project root."""
    return root / CHANGEGUARD_DIR


def load_config(root: Path) -> ProjectConfig:
    """Load configuration from .changeguard/config.json, or defaults."""
    config_path = get_changeguard_dir(root) / CONFIG_FILE
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
            return ProjectConfig(**data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e
    return ProjectConfig(name=root.name, root_path=str(root))


def save_config(root: Path, config: ProjectConfig) -> None:
    """Save configuration to .changeguard/config.json."""
    cg_dir = get_changeguard_dir(root)
    cg_dir.mkdir(parents=True, exist_ok=True)
    config_path = cg_dir / CONFIG_FILE
    config_path.write_text(json.dumps(config.model_dump(), indent=2))


def set_config_value(config: ProjectConfig, key: str, value: Any) -> ProjectConfig:
    """Set a nested config value using dot notation (e.g., 'scoring.clamp_at_zero')."""
    overrides_prefix = "scoring.overrides."
    if key.startswith(overrides_prefix):
        # Override keys are check ids, which contain dots themselves
        parts = ["scoring", "overrides", key[len(overrides_prefix):]]
    else:
        parts = key.split(".")
    data = config.model_dump()
    target = data
    for part in parts[:-1]:
        if part not in target or not isinstance(target[part], dict):
            raise KeyError(f"Invalid config key: {key}")
        target = target[part]
    # Override tables accept new keys; everything else must already exist
    if parts[-1] not in target and parts[:-1] != ["scoring", "overrides"]:
        raise KeyError(f"Invalid config key: {key}")
    target[parts[-1]] = value
    return ProjectConfig(**data)
