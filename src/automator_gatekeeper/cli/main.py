"""CLI entry point for automator-gatekeeper.

Invoked as::

    automator-gate [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m automator_gatekeeper.cli.main

Commands
--------
- check            Ask the gatekeeper about one action request
- whitelist ...    Add, remove or list whitelist entries
- blacklist ...    Add, remove or list blacklist entries
- config init      Write the default security config
- config show      Display the security config in effect
- audit show       Display recent persisted audit entries
- audit export     Export persisted audit entries to CSV, JSON or JSONL
- version          Show version information
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from automator_gatekeeper.errors import ConfigSaveError, RateLimitExceeded
from automator_gatekeeper.settings import GatekeeperSettings, SettingsLoader

if TYPE_CHECKING:
    from automator_gatekeeper.store.policy_store import FilePolicyStore

console = Console()
err_console = Console(stderr=True)

_DEFAULT_SETTINGS = Path("gatekeeper.yaml")

_EXIT_DENIED = 1
_EXIT_RATE_LIMITED = 2


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="automator-gatekeeper")
@click.option(
    "--settings",
    "-s",
    "settings_path",
    default=None,
    type=click.Path(),
    help=f"Path to gatekeeper settings YAML (default: ./{_DEFAULT_SETTINGS} if present).",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    type=click.Path(),
    help="Security config file; overrides the settings value.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Emit gatekeeper logs at this level to stderr.",
)
@click.pass_context
def cli(ctx: click.Context, settings_path: str | None, config_path: str | None, log_level: str | None) -> None:
    """Automator Gatekeeper CLI: permission checks, lists, config and audit."""
    if log_level:
        logging.basicConfig(
            level=log_level.upper(),
            format="%(name)s: %(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )

    settings = _load_settings(settings_path)
    if config_path is not None:
        settings = settings.model_copy(update={"config_path": Path(config_path).expanduser()})
    ctx.obj = settings


def _load_settings(settings_path: str | None) -> GatekeeperSettings:
    loader = SettingsLoader()
    if settings_path is None:
        return loader.load(_DEFAULT_SETTINGS) if _DEFAULT_SETTINGS.exists() else loader.defaults()
    try:
        return loader.load(Path(settings_path))
    except (FileNotFoundError, ValueError) as exc:
        err_console.print(f"[red]Invalid settings:[/red] {exc}")
        sys.exit(1)


def _open_store(settings: GatekeeperSettings) -> FilePolicyStore:
    from automator_gatekeeper.store.policy_store import FilePolicyStore

    store = FilePolicyStore(settings.config_path)
    store.load()
    return store


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from automator_gatekeeper import __version__

    console.print(
        Panel(
            f"[bold]automator-gatekeeper[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Permission, rate-limit and audit gate for desktop automation.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@click.option("--kind", "-k", required=True, help="Action kind, e.g. send_email or file_operation.")
@click.option(
    "--details",
    "-d",
    "details_json",
    default="{}",
    show_default=True,
    help='Request payload as JSON, e.g. \'{"to": "a@example.com"}\'.',
)
@click.pass_obj
def check_command(settings: GatekeeperSettings, kind: str, details_json: str) -> None:
    """Evaluate one action request against the security config."""
    try:
        details = json.loads(details_json)
    except json.JSONDecodeError as exc:
        err_console.print(f"[red]Invalid JSON:[/red] {exc}")
        sys.exit(1)
    if not isinstance(details, dict):
        err_console.print("[red]Invalid JSON:[/red] details must be an object")
        sys.exit(1)

    from automator_gatekeeper.gatekeeper import Gatekeeper

    gatekeeper = Gatekeeper.from_settings(settings)
    try:
        decision = gatekeeper.check_permission(kind, details)
    except RateLimitExceeded as exc:
        console.print(Panel("[red]RATE LIMITED[/red]", title="Permission Check", border_style="blue"))
        console.print(f"  Reason: {exc}")
        sys.exit(_EXIT_RATE_LIMITED)

    if decision.allowed and not decision.requires_confirmation:
        status_str = "[green]ALLOWED[/green]"
    elif decision.allowed:
        status_str = "[yellow]REQUIRES CONFIRMATION[/yellow]"
    else:
        status_str = "[red]DENIED[/red]"

    console.print(Panel(status_str, title="Permission Check", border_style="blue"))
    if decision.message:
        console.print(f"  Message: {decision.message}")
    if decision.reason:
        console.print(f"  Reason: {decision.reason}")
    if decision.code is not None:
        console.print(f"  Code: [magenta]{decision.code.value}[/magenta]")

    sys.exit(0 if decision.allowed else _EXIT_DENIED)


# ---------------------------------------------------------------------------
# whitelist / blacklist groups
# ---------------------------------------------------------------------------


def _list_group(name: str) -> click.Group:
    """Build the add/remove/list command group for one global list."""

    @click.group(name=name, help=f"Manage the {name}.")
    def group() -> None:
        pass

    def mutate(settings: GatekeeperSettings, item: str, mutation: str) -> None:
        from automator_gatekeeper.store.policy_store import ListMutation

        store = _open_store(settings)
        method = store.mutate_whitelist if name == "whitelist" else store.mutate_blacklist
        try:
            changed = method(item, ListMutation(mutation))
        except ConfigSaveError as exc:
            err_console.print(f"[red]Could not save:[/red] {exc}")
            sys.exit(1)
        verb = "Added" if mutation == "add" else "Removed"
        if changed:
            console.print(f"[green]{verb}[/green] {item!r} ({name})")
        else:
            console.print(f"[yellow]Unchanged[/yellow] {item!r} ({name})")

    @group.command(name="add", help=f"Add ITEM to the {name}.")
    @click.argument("item")
    @click.pass_obj
    def add_command(settings: GatekeeperSettings, item: str) -> None:
        mutate(settings, item, "add")

    @group.command(name="remove", help=f"Remove ITEM from the {name}.")
    @click.argument("item")
    @click.pass_obj
    def remove_command(settings: GatekeeperSettings, item: str) -> None:
        mutate(settings, item, "remove")

    @group.command(name="list", help=f"List {name} entries.")
    @click.pass_obj
    def list_command(settings: GatekeeperSettings) -> None:
        store = _open_store(settings)
        items = store.whitelist() if name == "whitelist" else store.blacklist()
        if not items:
            console.print(f"[yellow]The {name} is empty.[/yellow]")
            return
        for item in sorted(items):
            console.print(item)

    return group


cli.add_command(_list_group("whitelist"))
cli.add_command(_list_group("blacklist"))


# ---------------------------------------------------------------------------
# config group
# ---------------------------------------------------------------------------


@cli.group(name="config")
def config_group() -> None:
    """Security config commands."""


@config_group.command(name="init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.pass_obj
def config_init_command(settings: GatekeeperSettings, force: bool) -> None:
    """Write the built-in default security config."""
    from automator_gatekeeper.store.policy_store import FilePolicyStore

    path = settings.config_path
    if path.exists() and not force:
        err_console.print(f"[red]Refusing to overwrite[/red] {path} (use --force).")
        sys.exit(1)

    store = FilePolicyStore(path)
    try:
        store.save()
    except ConfigSaveError as exc:
        err_console.print(f"[red]Could not save:[/red] {exc}")
        sys.exit(1)
    console.print(f"[green]Initialised[/green] security config: [bold]{path}[/bold]")


@config_group.command(name="show")
@click.pass_obj
def config_show_command(settings: GatekeeperSettings) -> None:
    """Display the security config in effect."""
    store = _open_store(settings)
    config = store.snapshot()

    console.print(f"Config file: [bold]{settings.config_path}[/bold]")
    lists = Table(title="Global Lists", box=box.SIMPLE)
    lists.add_column("List", style="cyan")
    lists.add_column("Entries")
    lists.add_row("whitelist", ", ".join(sorted(config.whitelist)) or "-")
    lists.add_row("blacklist", ", ".join(sorted(config.blacklist)) or "-")
    console.print(lists)

    table = Table(title="Category Permissions", box=box.SIMPLE)
    table.add_column("Category", style="cyan")
    table.add_column("Setting", style="magenta")
    table.add_column("Value")
    for category, section in config.permissions.model_dump(by_alias=True).items():
        for key, value in section.items():
            shown = ", ".join(value) if isinstance(value, list) else str(value)
            table.add_row(category, key, shown or "-")
    console.print(table)


# ---------------------------------------------------------------------------
# audit group
# ---------------------------------------------------------------------------


@cli.group(name="audit")
def audit_group() -> None:
    """Persisted audit trail commands."""


@audit_group.command(name="show")
@click.option("--last", "-n", default=20, show_default=True, type=int, help="Number of recent entries to show.")
@click.option("--action", "-a", default=None, help="Only show entries for this action kind.")
@click.pass_obj
def audit_show_command(settings: GatekeeperSettings, last: int, action: str | None) -> None:
    """Show recent audit entries from the audit file."""
    from automator_gatekeeper.audit.writer import AuditWriter

    writer = AuditWriter(settings.audit.log_path)
    records = writer.read_all()
    if action is not None:
        records = [r for r in records if r.get("action") == action]
    records = records[-last:] if last > 0 else []

    if not records:
        console.print("[yellow]No audit entries found.[/yellow]")
        return

    table = Table(title=f"Last {last} Audit Entries", box=box.SIMPLE)
    table.add_column("Timestamp", style="dim", no_wrap=True)
    table.add_column("Action", style="cyan")
    table.add_column("Outcome", style="magenta")
    table.add_column("Details")

    for record in records:
        ts = str(record.get("timestamp", ""))[:19].replace("T", " ")
        allowed = record.get("allowed")
        outcome = "pending" if allowed is None else ("allowed" if allowed else "denied")
        details = json.dumps(record.get("details", {}), default=str)
        table.add_row(ts, str(record.get("action", "")), outcome, details)

    console.print(table)
    console.print(f"  Total audit records: [cyan]{writer.count()}[/cyan]")


@audit_group.command(name="export")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["csv", "json", "jsonl"]),
    default="csv",
    show_default=True,
    help="Export format.",
)
@click.option("--output", "-o", "output_file", required=True, type=click.Path(), help="Output file path.")
@click.option("--action", "-a", default=None, help="Only export entries for this action kind.")
@click.option(
    "--outcome",
    type=click.Choice(["allowed", "denied"]),
    default=None,
    help="Only export entries with this outcome.",
)
@click.pass_obj
def audit_export_command(
    settings: GatekeeperSettings,
    output_format: str,
    output_file: str,
    action: str | None,
    outcome: str | None,
) -> None:
    """Export the audit file to CSV, JSON or JSONL."""
    from automator_gatekeeper.audit.exporter import AuditExporter
    from automator_gatekeeper.audit.log import AuditFilter, AuditOutcome
    from automator_gatekeeper.audit.writer import AuditWriter

    criteria = AuditFilter(action=action, outcome=AuditOutcome(outcome) if outcome else None)
    exporter = AuditExporter(AuditWriter(settings.audit.log_path))
    out_path = Path(output_file)
    count = exporter.export(out_path, output_format, criteria)

    console.print(f"[green]Exported[/green] {count} records to [bold]{out_path}[/bold] ({output_format.upper()}).")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
