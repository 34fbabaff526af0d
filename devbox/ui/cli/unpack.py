"""
CLI command for the offline-host setup.

Thin wrapper over ``devbox.core.use_cases.unpack``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from devbox.ui.cli.output import echo_error, echo_report


class StrictCommand(click.Command):
    """A command whose usage errors (unknown flags, stray args) exit with 1."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


@click.command(cls=StrictCommand)
@click.option(
    "--plugins-tar",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Plugin archive produced by 'devbox bundle'.",
)
@click.option(
    "--runtime-bin",
    "--matlab-bin",
    "runtime_bin",
    default=None,
    help="Directory containing the numerical runtime executable, added to PATH.",
)
@click.option(
    "--mock",
    is_flag=True,
    help="Use mock adapters (no package installs). Adapters only: plugins and config files are still written.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def unpack(
    ctx: click.Context,
    plugins_tar: Path | None,
    runtime_bin: str | None,
    mock: bool,
    as_json: bool,
) -> None:
    """Set up Neovim on an offline host from a plugin archive.

    Installs the remote package catalog with dnf/yum (failures are
    reported, not fatal), unpacks the archive into the vendor pack
    directory, writes the offline init.vim and the plugin listing.

    Examples:

        devbox unpack --plugins-tar ~/nvim-plugins.tar.gz

        devbox unpack --plugins-tar nvim-plugins.tar.gz --runtime-bin /opt/MATLAB/R2023b/bin
    """
    from devbox.core.use_cases.unpack import run_unpack

    result = run_unpack(
        config_path=ctx.obj.get("config_path"),
        plugins_tar=plugins_tar,
        runtime_bin=runtime_bin,
        mock_mode=mock,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    if result.report is None:
        echo_error(result.error or "Unpack failed")
        sys.exit(1)

    mode_label = "[mock] " if mock else ""
    click.secho(f"\n🧰 {mode_label}Offline Neovim setup", fg="cyan", bold=True)
    echo_report(result.report, verbose=ctx.obj.get("verbose", False))

    if result.packages and result.packages.failed:
        click.secho(f"   ⚠️  Not installed: {', '.join(result.packages.failed)}", fg="yellow")

    label = "Unpacked plugins" if result.extracted else "Expected plugins"
    click.echo(f"   {label} ({len(result.plugins)}):")
    for name in result.plugins:
        click.echo(f"     • {name}")
    if result.editor_config:
        click.echo(f"   Config: {result.editor_config}")
    if result.path_appended:
        click.echo("   PATH updated — open a new shell to use it")

    if not result.ok:
        click.echo()
        echo_error(result.error or "Unpack failed")
        sys.exit(1)

    click.echo()
    click.echo("   Keys: ,p (files)  ,t (ctags)  F5 build/run  F6 run (C/C++)")
    click.echo()
