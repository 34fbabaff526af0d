"""
CLI commands for config backups.

Thin wrappers over ``devbox.core.services.backup_ops``.
"""

from __future__ import annotations

import json
import sys

import click

from devbox.ui.cli.output import echo_error


def _load(ctx: click.Context):
    """State and state path for the backup commands."""
    from devbox.core.config.loader import load_config
    from devbox.core.detection.platform import detect_platform
    from devbox.core.persistence.state_file import default_state_path, load_state

    config = load_config(ctx.obj.get("config_path"))
    facts = detect_platform()
    state_path = default_state_path(facts, config.state_dir)
    return load_state(state_path), state_path


@click.group()
def backup() -> None:
    """Config backups — list and sweep expired backup directories."""


@backup.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_backups_cmd(ctx: click.Context, as_json: bool) -> None:
    """List backup directories recorded by provision runs."""
    from devbox.core.errors import DevboxError
    from devbox.core.services.backup_ops import list_backups

    try:
        state, _ = _load(ctx)
    except DevboxError as e:
        echo_error(str(e))
        sys.exit(1)

    rows = list_backups(state)

    if as_json:
        click.echo(json.dumps({"backups": rows}, indent=2))
        return

    if not rows:
        click.secho("No backups recorded.", fg="yellow")
        return

    click.secho(f"🗄  Backups ({len(rows)}):", fg="cyan", bold=True)
    for row in rows:
        if row["swept"]:
            marker, color = "✓ swept", "white"
        elif not row["exists"]:
            marker, color = "gone", "white"
        elif row["expired"]:
            marker, color = "expired", "yellow"
        else:
            marker, color = f"until {row['delete_after'][:10]}", "green"
        at = " ⏰" if row["scheduled"] else ""
        click.echo(f"   {row['directory']}  ({row['paths']} path(s)){at}  ", nl=False)
        click.secho(marker, fg=color)


@backup.command("sweep")
@click.option("--dry-run", is_flag=True, help="Show what would be removed.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def sweep_cmd(ctx: click.Context, dry_run: bool, as_json: bool) -> None:
    """Remove backup directories past their retention window."""
    from devbox.core.errors import DevboxError
    from devbox.core.persistence.state_file import save_state
    from devbox.core.services.backup_ops import sweep_backups

    try:
        state, state_path = _load(ctx)
    except DevboxError as e:
        echo_error(str(e))
        sys.exit(1)

    result = sweep_backups(state, dry_run=dry_run)
    if not dry_run:
        save_state(state, state_path)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.errors:
            sys.exit(1)
        return

    label = "Would remove" if dry_run else "Removed"
    for directory in result.removed:
        click.secho(f"   🗑  {label} {directory}", fg="green")
    for directory in result.already_gone:
        click.echo(f"   ·  Already gone: {directory}")
    for err in result.errors:
        click.secho(f"   ✗ {err}", fg="red")
    if not (result.removed or result.already_gone or result.errors):
        click.echo("   Nothing to sweep.")
    click.echo(f"   Pending: {result.pending}")

    if result.errors:
        sys.exit(1)
