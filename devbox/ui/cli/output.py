"""
Shared console output for the run commands.
"""

from __future__ import annotations

import click

from devbox.core.engine.pipeline import PipelineReport

STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}

_STAGE_MARKERS = {
    "ok": ("✓", "green"),
    "failed": ("✗", "red"),
    "skipped": ("⊘", "yellow"),
    "not-run": ("·", "white"),
}


def echo_error(message: str) -> None:
    click.secho(f"❌ {message}", fg="red")


def echo_report(report: PipelineReport, *, verbose: bool = False) -> None:
    """Per-stage lines, then failed actions and a one-line summary."""
    for stage in report.stages:
        marker, color = _STAGE_MARKERS.get(stage.status, ("?", "white"))
        click.secho(f"   {marker} {stage.name}", fg=color, nl=False)
        timing = f" ({stage.duration_ms}ms)" if stage.duration_ms else ""
        click.echo(timing)
        if stage.error:
            click.echo(f"     │ {stage.error}")

    failed = [r for r in report.changes if r.failed]
    if failed:
        click.echo()
        click.secho("   Failed actions:", fg="red", bold=True)
        for receipt in failed:
            click.echo(f"     ✗ {receipt.action_id}")
            for line in (receipt.error or "").split("\n")[:5 if verbose else 2]:
                click.echo(f"       │ {line}")

    skipped = [r for r in report.changes if r.skipped]
    if skipped and verbose:
        click.echo()
        for receipt in skipped:
            click.echo(f"   ⊘ {receipt.output or receipt.action_id}")

    click.echo()
    click.secho(
        f"   Result: {report.status} — {len(report.changes)} change action(s), "
        f"{report.actions_failed} failed",
        fg=STATUS_COLORS.get(report.status, "white"),
        bold=True,
    )
