"""
CLI command for plugin bundling.

Thin wrapper over ``devbox.core.use_cases.bundle``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from devbox.ui.cli.output import echo_error, echo_report


@click.command()
@click.option("--remote-user", default=None, help="User on the offline host.")
@click.option("--remote-host", default=None, help="Offline host to copy the archive to.")
@click.option("--remote-path", default=None, help="Destination path on the remote host.")
@click.option("--archive-name", default=None, help="Archive file name (default: nvim-plugins.tar.gz).")
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for clones, staging and the archive (default: ~/.cache/devbox/bundle).",
)
@click.option("--skip-transfer", is_flag=True, help="Build the archive only; don't scp it.")
@click.option(
    "--allow-duplicates",
    is_flag=True,
    default=None,
    help="Accept plugin URLs that unpack to the same directory (later wins).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def bundle(
    ctx: click.Context,
    remote_user: str | None,
    remote_host: str | None,
    remote_path: str | None,
    archive_name: str | None,
    work_dir: Path | None,
    skip_transfer: bool,
    allow_duplicates: bool | None,
    as_json: bool,
) -> None:
    """Bundle editor plugins into an archive for an offline host.

    Clones (or updates) every plugin in ``bundle.plugins``, strips VCS
    and CI metadata from copies, writes a tar.gz with an embedded
    manifest and copies it to the remote host with scp.

    Examples:

        devbox bundle --skip-transfer

        devbox bundle --remote-user me --remote-host lab01 --remote-path /tmp
    """
    from devbox.core.use_cases.bundle import run_bundle

    result = run_bundle(
        config_path=ctx.obj.get("config_path"),
        remote_user=remote_user,
        remote_host=remote_host,
        remote_path=remote_path,
        archive_name=archive_name,
        work_dir=work_dir,
        skip_transfer=skip_transfer,
        allow_duplicates=allow_duplicates,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    if result.report is None:
        echo_error(result.error or "Bundle failed")
        sys.exit(1)

    click.secho(f"\n📦 Plugin bundle — {len(result.sources)} plugin(s)", fg="cyan", bold=True)
    echo_report(result.report, verbose=ctx.obj.get("verbose", False))

    if result.archive:
        click.echo(f"   Archive: {result.archive}")
        for name in result.manifest.plugins if result.manifest else []:
            click.echo(f"     • {name}")
    if result.target:
        click.echo(f"   Copied to: {result.target}")
        click.echo(f"   Next, on {remote_host}: devbox unpack --plugins-tar <path to the copied archive>")

    if not result.ok:
        click.echo()
        echo_error(result.error or "Bundle failed")
        sys.exit(1)
    click.echo()
