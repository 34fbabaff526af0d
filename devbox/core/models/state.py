"""
DevboxState — the root state model.

Serialized to ``~/.local/state/devbox/state.json`` and loaded on every
run. It remembers the backup directories awaiting deletion (so the
next run can sweep them) and a summary of the last run.

It's disposable: delete it and the only loss is that old backup
directories are no longer swept automatically.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class BackupRecord(BaseModel):
    """One backup directory created by the backup stage."""

    directory: str
    created_at: str = Field(default_factory=_now_iso)
    delete_after: str = ""
    moved: dict[str, str] = Field(default_factory=dict)   # source → destination
    scheduled: bool = False     # an ``at`` job was registered
    swept: bool = False

    def is_expired(self, now: datetime) -> bool:
        if not self.delete_after:
            return False
        return datetime.fromisoformat(self.delete_after) <= now


class RunRecord(BaseModel):
    """Summary of the last run."""

    run_id: str = ""
    kind: str = ""                  # provision, bundle, unpack
    started_at: str = ""
    ended_at: str = ""
    status: str = ""                # ok, partial, failed
    stages: dict[str, str] = Field(default_factory=dict)   # stage → status


class DevboxState(BaseModel):
    """Root state model — serialized to state.json."""

    schema_version: int = 1

    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    backups: list[BackupRecord] = Field(default_factory=list)
    last_run: RunRecord = Field(default_factory=RunRecord)

    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def pending_backups(self) -> list[BackupRecord]:
        return [b for b in self.backups if not b.swept]
