"""
devbox — CLI entrypoint.

Usage:
    devbox --help
    devbox provision --dry-run
    devbox bundle --skip-transfer
    devbox unpack --plugins-tar nvim-plugins.tar.gz
    devbox config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from devbox import __version__
from devbox.core.observability.logging_config import setup_logging
from devbox.ui.cli.output import STATUS_COLORS, echo_error, echo_report

STAGE_CHOICES = ("backup", "bootstrap", "tools", "runtime", "editor")


@click.group()
@click.version_option(version=__version__, prog_name="devbox")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to devbox.yml (default: auto-detect, else packaged defaults).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """devbox — idempotent development-environment provisioning."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("DEVBOX_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("DEVBOX_LOG_FILE"),
        log_file_level=os.environ.get("DEVBOX_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.command()
@click.option("--dry-run", is_flag=True, help="Check presence only; change nothing.")
@click.option(
    "--mock",
    is_flag=True,
    help="Use mock adapters (no real installs). Adapters only: backups and config files are still written.",
)
@click.option(
    "--only",
    multiple=True,
    type=click.Choice(STAGE_CHOICES),
    help="Run only this stage (repeatable).",
)
@click.option(
    "--skip",
    multiple=True,
    type=click.Choice(STAGE_CHOICES),
    help="Skip this stage (repeatable).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def provision(
    ctx: click.Context,
    dry_run: bool,
    mock: bool,
    only: tuple[str, ...],
    skip: tuple[str, ...],
    as_json: bool,
) -> None:
    """Provision this machine: backup, bootstrap, tools, runtime, editor.

    Every step checks before it acts, so re-running is safe.

    Examples:

        devbox provision --dry-run

        devbox provision --only editor

        devbox provision --skip runtime -v
    """
    from devbox.core.use_cases.provision import run_provision

    result = run_provision(
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
        mock_mode=mock,
        only=only,
        skip=skip,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    if result.report is None:
        echo_error(result.error or "Provision failed")
        sys.exit(1)

    facts = result.facts
    mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
    click.secho(
        f"\n⚙️  {mode_label}Provision — {facts.os_family}/{facts.arch}" if facts else "",
        fg="cyan",
        bold=True,
    )
    echo_report(result.report, verbose=ctx.obj.get("verbose", False))

    if result.backup and result.backup.directory:
        click.echo(f"   Backup: {result.backup.directory} ({len(result.backup.moved)} path(s))")
    if result.installed:
        click.echo(f"   Installed: {', '.join(result.installed)}")
    if result.editor_config and not dry_run:
        click.echo(f"   Config: {result.editor_config}")

    if not result.ok:
        click.echo()
        echo_error(result.error or "Provision failed")
        sys.exit(1)

    if not dry_run and not ctx.obj.get("quiet"):
        click.echo()
        click.echo("   Open a new terminal (or source ~/.bash_profile) to pick up PATH changes.")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show the last run, pending backups and available tools."""
    from devbox.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        echo_error(result.error)
        sys.exit(1)

    facts = result.facts
    assert facts is not None  # guaranteed after error check above

    click.secho(f"\n📋 devbox {__version__}", fg="cyan", bold=True)
    distro = f" ({', '.join(facts.distro_like)})" if facts.distro_like else ""
    click.echo(f"   Platform: {facts.os_family}/{facts.arch}{distro}")
    click.echo(f"   State: {result.state_path}")

    last = result.state.last_run if result.state else None
    if last and last.run_id:
        click.echo()
        click.secho("   Last run:", fg="white", bold=True)
        click.echo(f"     {last.kind} {last.run_id} — ", nl=False)
        click.secho(last.status, fg=STATUS_COLORS.get(last.status, "white"))
        if last.ended_at:
            click.echo(f"     at {last.ended_at}")
        for stage, stage_status in last.stages.items():
            click.echo(f"     • {stage}: {stage_status}")

    pending = result.pending_backups
    click.echo()
    click.secho(f"   Pending backups: {len(pending)}", fg="white", bold=True)
    for row in pending:
        expired = " (expired — run 'devbox backup sweep')" if row["expired"] else ""
        click.echo(f"     • {row['directory']} until {row['delete_after'][:10]}{expired}")

    click.echo()
    click.secho("   Tools:", fg="white", bold=True)
    for name, info in result.adapters.items():
        marker = "✓" if info["available"] else "✗"
        color = "green" if info["available"] else "white"
        click.secho(f"     {marker} {name}", fg=color)
    click.echo()


@cli.group()
def config() -> None:
    """devbox configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate devbox.yml configuration."""
    from devbox.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)
        return

    if result.valid:
        summary = result.to_dict()
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Source: {result.config_path or 'packaged defaults'}")
        click.echo(f"   Formulae: {summary['formulae']}  Casks: {summary['casks']}  Apt: {summary['apt']}")
        click.echo(f"   Libraries: {summary['libraries']}  Plugins: {summary['plugins']}")
        click.echo(f"   Remote packages: {summary['remote_packages']}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


@config.command("render")
@click.option("--offline", is_flag=True, help="Render the offline-host document.")
@click.option("--runtime-bin", default=None, help="Runtime bin directory (offline document only).")
@click.option("--os", "os_family", type=click.Choice(["darwin", "linux"]), default=None,
              help="Render for this OS instead of the current one.")
@click.option("--arch", default=None, help="Render for this architecture.")
@click.pass_context
def config_render(
    ctx: click.Context,
    offline: bool,
    runtime_bin: str | None,
    os_family: str | None,
    arch: str | None,
) -> None:
    """Print the generated init.vim without writing it."""
    from devbox.core.config.loader import load_config
    from devbox.core.detection.platform import detect_platform
    from devbox.core.errors import DevboxError
    from devbox.core.models.platform import PlatformFacts
    from devbox.core.services.editor_ops import (
        OFFLINE_TEMPLATE,
        WORKSTATION_TEMPLATE,
        RenderOptions,
        render_config,
    )

    try:
        cfg = load_config(ctx.obj.get("config_path"))
    except DevboxError as e:
        echo_error(str(e))
        sys.exit(1)

    if os_family:
        facts = PlatformFacts(os_family=os_family, arch=arch or "x86_64", home=Path.home())
    else:
        facts = detect_platform()
        if arch:
            facts = facts.model_copy(update={"arch": arch})

    options = RenderOptions(
        template=OFFLINE_TEMPLATE if offline else WORKSTATION_TEMPLATE,
        plugged_dir=cfg.editor.plugged_dir,
        runtime_bin=runtime_bin if offline else None,
    )
    click.echo(render_config(facts, options), nl=False)


# ── Register command groups ─────────────────────────────────────────

from devbox.ui.cli.backup import backup  # noqa: E402
from devbox.ui.cli.bundle import bundle  # noqa: E402
from devbox.ui.cli.unpack import unpack  # noqa: E402

cli.add_command(backup)
cli.add_command(bundle)
cli.add_command(unpack)


if __name__ == "__main__":
    cli()
