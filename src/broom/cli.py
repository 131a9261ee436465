"""CLI interface for Broom."""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path

import click

from broom.core.engine import BroomEngine
from broom.core.operations import Operation
from broom.core.retention import RetentionLevel
from broom.core.scanner import IncrementalScanner
from broom.core.tracker import Tracker
from broom.core.uninstall import AppDescriptor
from broom.models.clean_result import OperationResult
from broom.models.preview import PreviewNode, selected_paths
from broom.models.rules import RuleKind
from broom.settings import Settings
from broom.utils import bytes_to_human, format_elapsed, xdg_data_home

_MB = 1024 * 1024

_CLEAN_CHOICES = [Operation.CACHE.value, Operation.LOGS.value, Operation.BROWSERS.value, Operation.SMART.value]


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _build_engine() -> BroomEngine:
    return BroomEngine(on_event=Tracker())


def _default_pruned_subtrees() -> list[Path]:
    """Large folders owned by package managers rather than the user."""
    return [xdg_data_home() / "flatpak", Path.home() / "snap"]


def _print_result(result: OperationResult, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.echo(
        f"  {click.style('✓', fg='green')} Moved {result.items_removed:,} items to the trash, "
        f"freed {click.style(bytes_to_human(result.bytes_freed), fg='green', bold=True)}"
    )
    if result.items_failed:
        click.echo(f"  {click.style('!', fg='yellow')} {result.items_failed:,} items could not be moved")
        for error in result.errors[:10]:
            click.echo(f"      {click.style(error, fg='bright_black')}")
    if result.trashed:
        click.echo("\nItems were moved to your desktop trash; restore them from there if needed.\n")


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
def main(verbose: int) -> None:
    """Broom, reclaim disk space through the trash."""
    _setup_logging(verbose)


# ── clean ────────────────────────────────────────────────────────────────

@main.command()
@click.argument("kind", type=click.Choice(_CLEAN_CHOICES))
@click.option("--level", "-l", type=click.Choice([lv.value for lv in RetentionLevel]), default=None,
              help="Retention level (defaults to the configured one)")
@click.option("--hidden/--no-hidden", default=None, help="Include hidden files (defaults to the configured value)")
@click.option("--aggressive", is_flag=True, help="Also clear browser service worker caches")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def clean(kind: str, level: str | None, hidden: bool | None, aggressive: bool, as_json: bool) -> None:
    """Move caches or logs to the trash."""
    engine = _build_engine()
    if not as_json:
        click.echo(f"\n{click.style('🧹', bold=True)} Cleaning {kind}...\n")
    result = engine.clean(Operation(kind), level=level, include_hidden=hidden, aggressive=aggressive)
    _print_result(result, as_json)


# ── duplicates ───────────────────────────────────────────────────────────

@main.command()
@click.argument("roots", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--hidden", is_flag=True, help="Include hidden files")
@click.option("--include-packages", is_flag=True, help="Look inside .app/.bundle style packages")
@click.option("--trash", "do_trash", is_flag=True, help="Keep the first copy of each group, trash the rest")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def duplicates(roots: tuple[Path, ...], hidden: bool, include_packages: bool, do_trash: bool, as_json: bool) -> None:
    """Find files with identical content."""
    engine = _build_engine()
    groups = engine.find_duplicates(list(roots), include_hidden=hidden, skip_packages=not include_packages)

    result = None
    if do_trash and groups:
        paths = [p for g in groups for p in g.default_selection()]
        result = engine.trash_paths(paths, Operation.DUPLICATES)

    if as_json:
        data = {"groups": [g.to_dict() for g in groups]}
        if result is not None:
            data["result"] = result.to_dict()
        click.echo(json.dumps(data, indent=2))
        return

    if not groups:
        click.echo("No duplicates found.")
        return

    for group in groups:
        click.echo(
            f"\n  {click.style(f'{len(group.files)} copies', fg='cyan', bold=True)} of "
            f"{bytes_to_human(group.size_per_file)}, "
            f"{click.style(bytes_to_human(group.reclaimable_bytes), fg='green')} reclaimable"
        )
        for i, path in enumerate(group.files):
            marker = click.style("keep", fg="green") if i == 0 else click.style("dup ", fg="yellow")
            click.echo(f"    {marker} {path}")

    total = sum(g.reclaimable_bytes for g in groups)
    click.echo(f"\nTotal reclaimable: {click.style(bytes_to_human(total), fg='green', bold=True)}\n")
    if result is not None:
        _print_result(result, as_json=False)


# ── big ──────────────────────────────────────────────────────────────────

@main.command()
@click.argument("scopes", nargs=-1, required=True, type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--min-mb", default=500, show_default=True, type=click.IntRange(min=0), help="Minimum size in MB")
@click.option("--hidden", is_flag=True, help="Include hidden files")
@click.option("--include-packages", is_flag=True, help="Report packages as single items")
@click.option("--exclude-subtree", "excluded", multiple=True, type=click.Path(path_type=Path),
              help="Do not descend into this folder (repeatable)")
@click.option("--gentle", is_flag=True, help="Slow the scan down to keep the system responsive")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def big(
    scopes: tuple[Path, ...],
    min_mb: int,
    hidden: bool,
    include_packages: bool,
    excluded: tuple[Path, ...],
    gentle: bool,
    as_json: bool,
) -> None:
    """Find large files."""
    scanner = IncrementalScanner()
    started = time.monotonic()
    try:
        records = scanner.scan(
            list(scopes),
            min_mb * _MB,
            include_hidden=hidden,
            skip_packages=not include_packages,
            exclude_subtrees=[*excluded, *_default_pruned_subtrees()],
            gentle=gentle,
        )
    except KeyboardInterrupt:
        scanner.cancel()
        click.echo("Cancelled.", err=True)
        sys.exit(130)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return

    if not records:
        click.echo(f"No files of {min_mb} MB or more found.")
        return
    for record in records:
        tag = click.style(" [package]", fg="blue") if record.is_package else ""
        click.echo(f"  {click.style(bytes_to_human(record.size), fg='green', bold=True):>20s}  {record.path}{tag}")
    click.echo(
        f"\nFound {len(records):,} files in {format_elapsed(time.monotonic() - started)} "
        f"({scanner.scanned_count:,} entries scanned)\n"
    )


# ── uninstall ────────────────────────────────────────────────────────────

def _echo_tree(nodes: list[PreviewNode], depth: int = 0) -> None:
    for node in nodes:
        detail = click.style(f" ({node.detail})", fg="bright_black") if node.detail else ""
        size = bytes_to_human(node.total_size)
        click.echo(f"  {'  ' * depth}{node.title}{detail}  {click.style(size, fg='green')}")
        if node.children:
            _echo_tree(node.children, depth + 1)


@main.command()
@click.argument("app_id")
@click.option("--name", default=None, help="Display name of the application")
@click.option("--app-path", default=None, type=click.Path(exists=True, path_type=Path),
              help="Application file or folder to remove too")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def uninstall(app_id: str, name: str | None, app_path: Path | None, yes: bool, as_json: bool) -> None:
    """Move an application's leftover files to the trash."""
    engine = _build_engine()
    app = AppDescriptor(app_id=app_id, name=name, app_path=app_path)
    plan = engine.plan_uninstall(app)

    if not plan:
        if as_json:
            click.echo(json.dumps({"status": "nothing_found", "plan": []}))
        else:
            click.echo("No leftovers found in your home folder.")
        return

    if not as_json:
        _echo_tree(plan)
        click.echo()
        if not yes and not click.confirm(f"Move {len(selected_paths(plan))} items to the trash?"):
            click.echo("Aborted.")
            return
    elif not yes:
        click.echo(json.dumps({"status": "preview", "plan": [n.to_dict() for n in plan]}, indent=2))
        return

    result = engine.uninstall(plan, app)
    if as_json:
        click.echo(json.dumps({"status": "removed", "result": result.to_dict()}, indent=2))
    else:
        _print_result(result, as_json=False)


# ── rules ────────────────────────────────────────────────────────────────

@main.group()
def rules() -> None:
    """Manage exclusion rules."""


@rules.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def rules_list(as_json: bool) -> None:
    """List exclusion rules."""
    rule_set = Settings().load_rules()
    if as_json:
        click.echo(json.dumps(rule_set.to_list(), indent=2))
        return
    if not rule_set:
        click.echo("No exclusion rules.")
        return
    for rule in rule_set.values():
        click.echo(f"  {click.style(rule.id, fg='cyan'):45s} {rule.kind.value:12s} {rule.value}")


@rules.command("add")
@click.argument("kind", type=click.Choice([k.value for k in RuleKind]))
@click.argument("value")
def rules_add(kind: str, value: str) -> None:
    """Add an exclusion rule."""
    rule = Settings().add_rule(kind, value)
    click.echo(f"Added rule {click.style(rule.id, fg='cyan')}")


@rules.command("remove")
@click.argument("rule_id")
def rules_remove(rule_id: str) -> None:
    """Remove an exclusion rule by id."""
    if not Settings().remove_rule(rule_id):
        click.echo(f"Rule '{rule_id}' not found.", err=True)
        sys.exit(1)
    click.echo("Removed.")


# ── stats ────────────────────────────────────────────────────────────────

@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats(as_json: bool) -> None:
    """Show space freed this month."""
    tracker = Tracker()
    data = {"month_total": tracker.month_total()}
    data["per_kind"] = {op.value: tracker.month_total(op.value) for op in Operation}

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"\n{click.style('📊', bold=True)} This month\n")
    click.echo(f"  Bytes freed: {click.style(bytes_to_human(data['month_total']), fg='green', bold=True)}")
    for kind, total in sorted(data["per_kind"].items(), key=lambda x: x[1], reverse=True):
        if total:
            click.echo(f"    {kind:15s} {bytes_to_human(total):>10s}")
    click.echo()


# ── service ──────────────────────────────────────────────────────────────

@main.group()
def service() -> None:
    """D-Bus service management."""


@service.command("start")
def service_start() -> None:
    """Start the D-Bus service in foreground."""
    from broom.dbus_service import start_service

    click.echo("Starting Broom D-Bus service...")
    start_service()
