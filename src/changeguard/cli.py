"""Command-line interface for ChangeGuard."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from pydantic import ValidationError
from rich.markup import escape

from changeguard import __version__
from changeguard.config import (
    ProjectConfig,
    find_project_root,
    load_config,
    save_config,
    set_config_value,
)
from changeguard.exceptions import ConfigError, SimulationAborted
from changeguard.ui.console import Console

if TYPE_CHECKING:
    from changeguard.analyzers.simulation import SimulationPlan

console = Console()

OUTPUT_FORMATS = ["text", "json"]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _get_project_root(path: str | None = None) -> Path:
    """Resolve the project root: --path, else the nearest .changeguard, else cwd."""
    if path:
        root = Path(path).resolve()
        if not root.exists():
            console.error(f"Path does not exist: {path}")
            sys.exit(2)
        return root
    return find_project_root() or Path.cwd().resolve()


def _load_config(root: Path) -> ProjectConfig:
    try:
        return load_config(root)
    except ConfigError as e:
        console.error(str(e))
        sys.exit(2)


def _echo_json(data: dict) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


@click.group()
@click.version_option(version=__version__, prog_name="changeguard")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool):
    """ChangeGuard - heuristic preflight, impact and dry-run checks for code changes."""
    _configure_logging(verbose)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
def init(path: str | None):
    """Write a default .changeguard/config.json for a project."""
    root = Path(path or ".").resolve()
    if not root.exists():
        console.error(f"Path does not exist: {root}")
        sys.exit(2)

    config = _load_config(root)
    config.name = root.name
    config.root_path = str(root)
    save_config(root, config)
    console.success(f"Configuration saved to {root / '.changeguard'}")


# =========================================================================
# Preflight
# =========================================================================

@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option(
    "--format", "output_format",
    type=click.Choice(OUTPUT_FORMATS), default="text", help="Output format.",
)
def preflight(path: str | None, output_format: str):
    """Validate prerequisites before executing a change.

    Exits non-zero when the recommendation is blocking.
    """
    from changeguard.analyzers.preflight import PreflightChecker

    root = _get_project_root(path)
    config = _load_config(root)

    if output_format == "text":
        console.banner("Preflight checks")
    checker = PreflightChecker(root, config)
    result = checker.run()

    if output_format == "json":
        _echo_json(result.to_dict())
    else:
        console.show_preflight(result)
        console.show_findings(result.report)

    sys.exit(checker.state.exit_code())


# =========================================================================
# Impact analysis
# =========================================================================

@main.command()
@click.argument("files", nargs=-1)
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--base", "-b", default=None, help="Base branch to diff against (when no files given).")
@click.option(
    "--format", "output_format",
    type=click.Choice(OUTPUT_FORMATS + ["markdown"]), default="text", help="Output format.",
)
def impact(files: tuple[str, ...], path: str | None, base: str | None, output_format: str):
    """Predict the consequences of changing FILES (or the git diff against --base).

    Usage:

        changeguard impact src/app/models.py

        changeguard impact --base main --format markdown
    """
    from changeguard.analyzers.impact import ImpactAnalyzer

    root = _get_project_root(path)
    config = _load_config(root)
    analyzer = ImpactAnalyzer(root, config)

    if output_format == "text":
        console.banner("Impact analysis")
    if files:
        analyzer.analyze_files(list(files))
    else:
        analyzer.analyze_diff(base)
    result = analyzer.result()

    if output_format == "json":
        _echo_json(result.to_dict())
    elif output_format == "markdown":
        from changeguard.report import render_markdown

        click.echo(render_markdown(
            result.report,
            title="Impact Analysis",
            sections={
                "Breaking Changes": result.breaking,
                "Security Concerns": result.security,
                "Affected Files": result.indirect,
                "Related Tests": result.tests,
            },
        ))
    else:
        console.show_impact(result)
        console.show_findings(result.report)

    sys.exit(analyzer.state.exit_code())


# =========================================================================
# Simulation
# =========================================================================

def _split_prefix(value: str, choices: tuple[str, ...]) -> tuple[str | None, str]:
    """'PREFIX:TARGET' -> (PREFIX, TARGET) when PREFIX is one of `choices`.

    Anything else is all target, so 'https://host/x' stays a single endpoint.
    """
    prefix, sep, rest = value.partition(":")
    if sep and prefix.upper() in {c.upper() for c in choices}:
        return prefix, rest
    return None, value


def _load_plan(plan: str) -> SimulationPlan:
    from changeguard.analyzers.simulation import SimulationPlan

    try:
        return SimulationPlan.model_validate_json(Path(plan).read_text())
    except ValidationError as e:
        error = e.errors()[0]
        where = ".".join(str(part) for part in error["loc"]) or "plan"
        raise click.BadParameter(f"{where}: {error['msg']}", param_hint="--plan")


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option(
    "--plan", type=click.Path(exists=True, dir_okay=False), default=None,
    help='JSON plan: {"files": [...], "commands": [...], "api": [...]}.',
)
@click.option("--file", "file_ops", multiple=True, help="File operation as OP:PATH (create/read/update/delete).")
@click.option("--command", "commands", multiple=True, help="Shell command to simulate.")
@click.option("--api", "api_calls", multiple=True, help="API call as [METHOD:]ENDPOINT.")
@click.option(
    "--format", "output_format",
    type=click.Choice(OUTPUT_FORMATS), default="text", help="Output format.",
)
def simulate(
    path: str | None, plan: str | None, file_ops: tuple[str, ...],
    commands: tuple[str, ...], api_calls: tuple[str, ...], output_format: str,
):
    """Dry-run file operations, commands and API calls without executing them.

    Exits non-zero when the simulated plan is not safe to execute.
    """
    from changeguard.analyzers.simulation import (
        FILE_OPERATIONS,
        HTTP_METHODS,
        ApiStep,
        FileStep,
        SimulationPlan,
        Simulator,
    )

    root = _get_project_root(path)
    config = _load_config(root)

    plan_data = _load_plan(plan) if plan else SimulationPlan()

    for value in file_ops:
        operation, target = _split_prefix(value, FILE_OPERATIONS)
        if operation is None:
            word, sep, _ = value.partition(":")
            # 'chmod:x' is a typo'd operation, 'C:\x' or 'x' is a path to read
            if sep and word.isalpha() and len(word) > 1:
                raise click.BadParameter(
                    f"Unknown file operation '{word}'", param_hint="--file"
                )
            operation = "read"
        plan_data.files.append(FileStep(operation=operation.lower(), path=target))
    plan_data.commands.extend(commands)
    for value in api_calls:
        method, endpoint = _split_prefix(value, HTTP_METHODS)
        plan_data.api.append(ApiStep(method=(method or "GET").upper(), endpoint=endpoint))

    if plan_data.is_empty:
        console.error("Nothing to simulate. Pass --plan, --file, --command or --api.")
        sys.exit(2)

    if output_format == "text":
        console.banner("Simulation (dry run)")
    simulator = Simulator(root, config, dry_run=True)
    aborted = False
    try:
        sim = simulator.execute(lambda s: s.run_plan(plan_data))
    except SimulationAborted as e:
        sim = e.report
        aborted = True

    if output_format == "json":
        _echo_json(sim.to_dict())
    else:
        console.show_simulation(sim)
        console.show_findings(sim.report)
        if aborted:
            console.error("Simulation failed - aborting")

    sys.exit(simulator.state.exit_code())


# =========================================================================
# Config Management
# =========================================================================

def _split_key(key: str) -> list[str]:
    prefix = "scoring.overrides."
    if key.startswith(prefix):
        return ["scoring", "overrides", key[len(prefix):]]
    return key.split(".")


@main.command("config")
@click.argument("action", type=click.Choice(["set", "get", "show"]))
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--path", "-p", default=None, help="Path to the project root.")
def config_cmd(action: str, key: str | None, value: str | None, path: str | None):
    """Manage ChangeGuard configuration."""
    root = _get_project_root(path)
    config = _load_config(root)

    if action == "show":
        console.console.print_json(json.dumps(config.model_dump(), indent=2))
    elif action == "get":
        if not key:
            console.error("Usage: changeguard config get <key>")
            sys.exit(2)
        data = config.model_dump()
        for part in _split_key(key):
            if isinstance(data, dict) and part in data:
                data = data[part]
            else:
                console.error(f"Unknown key: {key}")
                sys.exit(2)
        console.console.print(escape(f"{key} = {data}"))
    elif action == "set":
        if not key or value is None:
            console.error("Usage: changeguard config set <key> <value>")
            sys.exit(2)
        # Try to parse as JSON for non-string values
        try:
            parsed_value = json.loads(value)
        except json.JSONDecodeError:
            parsed_value = value

        try:
            config = set_config_value(config, key, parsed_value)
        except KeyError:
            console.error(f"Unknown config key: {key}")
            sys.exit(2)
        except ValidationError as e:
            console.error(f"Invalid value for {key}: {e.errors()[0]['msg']}")
            sys.exit(2)
        save_config(root, config)
        console.success(f"Set {key} = {parsed_value}")


if __name__ == "__main__":
    main()
