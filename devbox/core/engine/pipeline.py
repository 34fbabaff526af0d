"""
Pipeline engine — the ordered stage loop.

A run is a fixed sequence of named stages. Each stage is a callable
that issues its actions through the adapter registry and returns a
small details dict. The engine tags logs with the stage name, times
each stage, applies its failure policy and summarizes the run.

Flow:
    stages → filter (only/skip) → run in order → report → persist
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from devbox.adapters.registry import AdapterRegistry
from devbox.core.errors import DevboxError
from devbox.core.models.action import Action, Receipt
from devbox.core.observability.logging_config import stage_scope
from devbox.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)

FAIL_FAST = "fail-fast"
FAIL_SOFT = "fail-soft"

StageFn = Callable[[], dict[str, Any] | None]


@dataclass
class Stage:
    """A named step of a run."""

    name: str
    run: StageFn
    policy: str = FAIL_FAST
    description: str = ""


@dataclass
class StageReport:
    """Outcome of one stage."""

    name: str
    status: str = "pending"         # ok, failed, skipped, not-run
    policy: str = FAIL_FAST
    error: str | None = None
    duration_ms: int = 0
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "status": self.status,
            "policy": self.policy,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "details": self.details,
        }


@dataclass
class PipelineReport:
    """Result of a full run."""

    run_id: str = ""
    kind: str = ""
    dry_run: bool = False
    started_at: str = ""
    ended_at: str = ""
    stages: list[StageReport] = field(default_factory=list)
    journal: list[tuple[Action, Receipt]] = field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return any(s.status == "failed" and s.policy == FAIL_FAST for s in self.stages)

    @property
    def receipts(self) -> list[Receipt]:
        return [r for _, r in self.journal]

    @property
    def changes(self) -> list[Receipt]:
        """Receipts of actions that could modify the host."""
        return [r for a, r in self.journal if not a.read_only]

    @property
    def actions_failed(self) -> int:
        # Failed queries just mean "not present"
        return sum(1 for r in self.changes if r.failed)

    @property
    def errors(self) -> list[str]:
        errors = [s.error for s in self.stages if s.error]
        errors += [f"{r.action_id}: {r.error}" for r in self.changes if r.failed and r.error]
        return errors

    @property
    def status(self) -> str:
        if self.aborted:
            return "failed"
        if self.actions_failed or any(s.status == "failed" for s in self.stages):
            return "partial"
        return "ok"

    def stage(self, name: str) -> StageReport | None:
        for s in self.stages:
            if s.name == name:
                return s
        return None

    def stage_statuses(self) -> dict[str, str]:
        return {s.name: s.status for s in self.stages}

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "kind": self.kind,
            "status": self.status,
            "dry_run": self.dry_run,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "stages": [s.to_dict() for s in self.stages],
            "actions_total": len(self.changes),
            "actions_failed": self.actions_failed,
            "errors": self.errors,
        }


def select_stages(
    stages: list[Stage],
    only: Iterable[str] = (),
    skip: Iterable[str] = (),
) -> set[str]:
    """Names of the stages that should run.

    Raises:
        DevboxError: If ``only`` or ``skip`` name an unknown stage.
    """
    known = {s.name for s in stages}
    only, skip = set(only), set(skip)
    unknown = (only | skip) - known
    if unknown:
        raise DevboxError(
            f"Unknown stage(s): {', '.join(sorted(unknown))}. "
            f"Valid: {', '.join(s.name for s in stages)}"
        )
    selected = only or known
    return selected - skip


def run_pipeline(
    stages: list[Stage],
    registry: AdapterRegistry,
    *,
    kind: str,
    run_id: str | None = None,
    only: Iterable[str] = (),
    skip: Iterable[str] = (),
) -> PipelineReport:
    """Run stages in order under their failure policies.

    A fail-fast stage that raises a DevboxError stops the run; the
    remaining stages are reported as ``not-run``. A fail-soft stage's
    error is logged and the run continues.
    """
    selected = select_stages(stages, only, skip)
    report = PipelineReport(
        run_id=run_id or generate_run_id(),
        kind=kind,
        dry_run=registry.dry_run,
        started_at=datetime.now(UTC).isoformat(),
    )
    journal_start = len(registry.journal)

    aborted = False
    for stage in stages:
        stage_report = StageReport(name=stage.name, policy=stage.policy)
        report.stages.append(stage_report)

        if aborted:
            stage_report.status = "not-run"
            continue
        if stage.name not in selected:
            stage_report.status = "skipped"
            logger.info("⊘ %s skipped", stage.name)
            continue

        start = time.monotonic()
        with stage_scope(stage.name):
            logger.info("▶ %s%s", stage.name, f" — {stage.description}" if stage.description else "")
            try:
                stage_report.details = stage.run() or {}
                stage_report.status = "ok"
            except DevboxError as e:
                stage_report.status = "failed"
                stage_report.error = str(e)
                if stage.policy == FAIL_FAST:
                    logger.error("✗ %s failed: %s", stage.name, e)
                    aborted = True
                else:
                    logger.warning("✗ %s failed (continuing): %s", stage.name, e)
            stage_report.duration_ms = int((time.monotonic() - start) * 1000)
            if stage_report.status == "ok":
                logger.info("✓ %s (%d ms)", stage.name, stage_report.duration_ms)

    report.journal = list(registry.journal[journal_start:])
    report.ended_at = datetime.now(UTC).isoformat()
    return report


def write_audit_entry(
    report: PipelineReport,
    audit_writer: AuditWriter,
    *,
    installed: list[str] | None = None,
    backed_up: list[str] | None = None,
    context: dict[str, Any] | None = None,
) -> None:
    """Append one ledger entry summarizing a run."""
    start = datetime.fromisoformat(report.started_at) if report.started_at else None
    end = datetime.fromisoformat(report.ended_at) if report.ended_at else None
    duration_ms = int((end - start).total_seconds() * 1000) if start and end else 0

    audit_writer.write(
        AuditEntry(
            run_id=report.run_id,
            kind=report.kind,
            status=report.status,
            stages=report.stage_statuses(),
            actions_total=len(report.changes),
            actions_failed=report.actions_failed,
            installed=installed or [],
            backed_up=backed_up or [],
            duration_ms=duration_ms,
            errors=report.errors,
            context={"dry_run": report.dry_run, **(context or {})},
        )
    )


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"
