"""CLI entry point for aumos-gatekeeper.

Invoked as::

    gatekeeper [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m aumos_gatekeeper.cli.main

Commands
--------
- check        Decide whether a subject holds a permission
- permissions  List a subject's effective grants, roles and groups
- validate     Validate an access model file
- analyze      Summarise the permission patterns in an access model
- audit show   Display recent decision log entries
- version      Show version information
"""
from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import NoReturn

import click
import yaml
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from aumos_gatekeeper.config import ConfigLoader, GatekeeperConfig, GatekeeperConfigError
from aumos_gatekeeper.gatekeeper import Gatekeeper
from aumos_gatekeeper.loader import AccessModelLoader
from aumos_gatekeeper.storage.base import StorageError
from aumos_gatekeeper.storage.memory import InMemoryStorage

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("gatekeeper.yaml")
_DEFAULT_MODEL = Path("access.yaml")

_GRANT_SECTIONS: dict[str, str] = {
    "roles": "permissions",
    "groups": "permissions",
    "templates": "permissions",
    "assignments": "direct_grants",
}


def _load_config(config_path: str | None) -> GatekeeperConfig:
    loader = ConfigLoader()
    if config_path and Path(config_path).exists():
        return loader.load(Path(config_path))
    return loader.defaults()


def _build_gatekeeper(model_path: str, config: GatekeeperConfig) -> Gatekeeper:
    storage = InMemoryStorage()
    loader = AccessModelLoader(separator=config.permission_separator)
    asyncio.run(loader.load(storage, model_path))
    for extra_model in config.model_files:
        asyncio.run(loader.load(storage, extra_model))
    return Gatekeeper.from_config(storage, config)


def _fail(message: str, exit_code: int = 2) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(exit_code)


def _collect_patterns(raw: dict[str, object]) -> list[tuple[str, str]]:
    """Return ``(location, pattern)`` pairs for every grant in a raw model."""
    found: list[tuple[str, str]] = []
    for section, grant_key in _GRANT_SECTIONS.items():
        for record in raw.get(section) or []:  # type: ignore[union-attr]
            if not isinstance(record, dict):
                continue
            owner = record.get("id") or record.get("subject_id") or "?"
            for grant in record.get(grant_key) or []:
                pattern = grant if isinstance(grant, str) else grant.get("permission", grant.get("pattern"))
                found.append((f"{section}/{owner}", str(pattern)))
    return found


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="aumos-gatekeeper")
def cli() -> None:
    """Gatekeeper CLI: hierarchical permission checks and model tooling."""


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from aumos_gatekeeper import __version__

    console.print(
        Panel(
            f"[bold]aumos-gatekeeper[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Hierarchical RBAC/ABAC permission evaluation.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@click.argument("subject_id")
@click.argument("permission")
@click.option(
    "--model",
    "-m",
    "model_path",
    default=str(_DEFAULT_MODEL),
    show_default=True,
    help="Path to the access model YAML.",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    help="Path to gatekeeper.yaml (defaults apply when absent).",
)
@click.option(
    "--context",
    "context_json",
    default=None,
    help='Check context as JSON, e.g. \'{"attributes": {"department": "engineering"}}\'.',
)
@click.option("--strict", is_flag=True, default=False, help="Force strict mode.")
def check_command(
    subject_id: str,
    permission: str,
    model_path: str,
    config_path: str,
    context_json: str | None,
    strict: bool,
) -> None:
    """Decide whether SUBJECT_ID holds PERMISSION."""
    context: dict[str, object] = {}
    if context_json:
        try:
            context = json.loads(context_json)
        except json.JSONDecodeError as exc:
            _fail(f"Invalid context JSON: {exc}")
        if not isinstance(context, dict):
            _fail("Context JSON must be an object.")

    try:
        config = _load_config(config_path)
        if strict:
            config = config.model_copy(update={"strict_mode": True})
        gatekeeper = _build_gatekeeper(model_path, config)
    except (FileNotFoundError, GatekeeperConfigError, StorageError) as exc:
        _fail(str(exc))

    decision = asyncio.run(gatekeeper.has_permission(subject_id, permission, context))

    status_str = "[green]ALLOWED[/green]" if decision.allowed else "[red]DENIED[/red]"
    console.print(Panel(status_str, title="Permission Check Result", border_style="blue"))
    console.print(f"  Subject:    [bold]{escape(subject_id)}[/bold]")
    console.print(f"  Permission: [bold]{escape(decision.permission)}[/bold]")
    console.print(f"  Reason:     {escape(decision.reason)}")

    if decision.matched:
        table = Table(title="Matched Grants", box=box.SIMPLE)
        table.add_column("Pattern", style="cyan")
        table.add_column("Effect", style="magenta")
        table.add_column("Conditions", justify="right")
        for grant in decision.matched:
            table.add_row(grant.pattern, grant.effect.value, str(len(grant.conditions)))
        console.print(table)

    sys.exit(0 if decision.allowed else 1)


# ---------------------------------------------------------------------------
# permissions
# ---------------------------------------------------------------------------


@cli.command(name="permissions")
@click.argument("subject_id")
@click.option("--model", "-m", "model_path", default=str(_DEFAULT_MODEL), show_default=True)
@click.option("--config", "-c", "config_path", default=str(_DEFAULT_CONFIG), show_default=True)
def permissions_command(subject_id: str, model_path: str, config_path: str) -> None:
    """List SUBJECT_ID's effective grants, roles and groups."""
    try:
        gatekeeper = _build_gatekeeper(model_path, _load_config(config_path))
    except (FileNotFoundError, GatekeeperConfigError, StorageError) as exc:
        _fail(str(exc))

    async def _gather() -> tuple[list, list, list]:
        return (
            await gatekeeper.get_user_effective_permissions(subject_id),
            await gatekeeper.get_user_roles(subject_id),
            await gatekeeper.get_user_groups(subject_id),
        )

    grants, roles, groups = asyncio.run(_gather())

    if not grants:
        console.print(f"[yellow]No grants found for subject '{escape(subject_id)}'.[/yellow]")
        return

    table = Table(title=f"Effective grants for {subject_id}", box=box.SIMPLE)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Pattern", style="cyan")
    table.add_column("Effect", style="magenta")
    table.add_column("Conditions")
    for index, grant in enumerate(grants, start=1):
        conditions = ", ".join(
            f"{c.attribute} {c.to_dict()['operator']} {c.value!r}" for c in grant.conditions
        )
        table.add_row(str(index), grant.pattern, grant.effect.value, conditions or "-")
    console.print(table)
    console.print(f"  Roles:  [cyan]{', '.join(r.id for r in roles) or '-'}[/cyan]")
    console.print(f"  Groups: [cyan]{', '.join(g.id for g in groups) or '-'}[/cyan]")


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@cli.command(name="validate")
@click.option("--model", "-m", "model_path", default=str(_DEFAULT_MODEL), show_default=True)
def validate_command(model_path: str) -> None:
    """Validate an access model: structure, ids and permission strings."""
    from aumos_gatekeeper.models import is_valid_id
    from aumos_gatekeeper.permissions.pattern import is_valid_permission

    try:
        asyncio.run(AccessModelLoader().load(InMemoryStorage(), model_path))
        raw: dict[str, object] = yaml.safe_load(Path(model_path).read_text(encoding="utf-8")) or {}
    except (FileNotFoundError, GatekeeperConfigError, StorageError) as exc:
        _fail(str(exc))

    problems: list[tuple[str, str]] = []
    for location, pattern in _collect_patterns(raw):
        if not is_valid_permission(pattern):
            problems.append((location, f"invalid permission {pattern!r}"))

    known: dict[str, set[str]] = {}
    for section in ("users", "roles", "groups", "templates"):
        known[section] = set()
        for record in raw.get(section) or []:  # type: ignore[union-attr]
            record_id = record.get("id")
            known[section].add(record_id)
            if not is_valid_id(record_id):
                problems.append((f"{section}/{record_id}", "invalid id"))

    for assignment in raw.get("assignments") or []:  # type: ignore[union-attr]
        subject = assignment.get("subject_id", assignment.get("user_id"))
        for role_id in assignment.get("role_ids") or []:
            if role_id not in known["roles"]:
                problems.append((f"assignments/{subject}", f"unknown role {role_id!r}"))
        for group_id in assignment.get("group_ids") or []:
            if group_id not in known["groups"]:
                problems.append((f"assignments/{subject}", f"unknown group {group_id!r}"))

    if not problems:
        console.print(f"[green]Valid[/green] access model: [bold]{escape(model_path)}[/bold]")
        return

    table = Table(title="Model Problems", box=box.SIMPLE)
    table.add_column("Location", style="cyan")
    table.add_column("Problem", style="red")
    for location, problem in problems:
        table.add_row(location, problem)
    console.print(table)
    sys.exit(1)


# ---------------------------------------------------------------------------
# analyze
# ---------------------------------------------------------------------------


@cli.command(name="analyze")
@click.option("--model", "-m", "model_path", default=str(_DEFAULT_MODEL), show_default=True)
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit JSON instead of a table.")
def analyze_command(model_path: str, as_json: bool) -> None:
    """Summarise wildcard use and named fields across all grants."""
    from aumos_gatekeeper.analysis import analyze_patterns
    from aumos_gatekeeper.permissions.pattern import normalize_permission

    path = Path(model_path)
    if not path.exists():
        _fail(f"Access model not found: {path}")
    try:
        raw: dict[str, object] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        _fail(f"Failed to parse YAML: {exc}")

    patterns = [normalize_permission(p) for _, p in _collect_patterns(raw)]
    summary = analyze_patterns(patterns).to_dict()

    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    table = Table(title="Pattern Analysis", box=box.SIMPLE)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    for key, value in summary.items():
        rendered = ", ".join(value) if isinstance(value, list) else str(value)
        table.add_row(key, rendered or "-")
    console.print(table)


# ---------------------------------------------------------------------------
# audit group
# ---------------------------------------------------------------------------


@cli.group(name="audit")
def audit_group() -> None:
    """Decision log commands."""


@audit_group.command(name="show")
@click.option("--last", "-n", default=20, show_default=True, type=int, help="Number of recent entries to show.")
@click.option("--config", "-c", "config_path", default=str(_DEFAULT_CONFIG), show_default=True)
def audit_show_command(last: int, config_path: str) -> None:
    """Show recent decision log entries."""
    from aumos_gatekeeper.audit import DecisionLogger

    try:
        config = _load_config(config_path)
    except GatekeeperConfigError as exc:
        _fail(str(exc))

    log = DecisionLogger(log_path=config.audit.log_path)
    records = log.last_n(last)
    if not records:
        console.print("[yellow]No decision log entries found.[/yellow]")
        return

    table = Table(title=f"Last {last} Decisions", box=box.SIMPLE)
    table.add_column("Timestamp", style="dim", no_wrap=True)
    table.add_column("Subject", style="cyan")
    table.add_column("Permission", style="magenta")
    table.add_column("Allowed")
    table.add_column("Reason")
    for record in records:
        ts = str(record.get("timestamp", ""))[:19].replace("T", " ")
        allowed = "[green]yes[/green]" if record.get("allowed") else "[red]no[/red]"
        table.add_row(
            ts,
            str(record.get("subject_id", "")),
            str(record.get("permission", "")),
            allowed,
            str(record.get("reason", "")),
        )
    console.print(table)
    console.print(f"  Total decision records: [cyan]{log.count()}[/cyan]")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
