"""
Action and Receipt models — the execution contract.

Actions represent requested external operations (query a package,
clone a repository, register an ``at`` job). Receipts represent their
results. Stages send Actions through the adapter registry, adapters
return Receipts. Never exceptions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A requested operation to be executed by an adapter.

    The ``id`` doubles as the lookup key for stubbed responses in tests,
    so stages build it deterministically: ``<adapter>:<operation>:<unit>``.
    """

    id: str                         # unique action identifier
    adapter: str                    # which adapter handles this
    operation: str = ""             # adapter-specific verb (query, install, clone, ...)
    unit: str = ""                  # package, repository or path acted upon
    stage: str = ""                 # pipeline stage that issued the action
    read_only: bool = False         # queries still run under --dry-run
    params: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def build(
        cls,
        adapter: str,
        operation: str,
        unit: str = "",
        *,
        stage: str = "",
        read_only: bool = False,
        **params: Any,
    ) -> Action:
        """Create an action with the conventional id."""
        action_id = f"{adapter}:{operation}:{unit}" if unit else f"{adapter}:{operation}"
        return cls(
            id=action_id,
            adapter=adapter,
            operation=operation,
            unit=unit,
            stage=stage,
            read_only=read_only,
            params=params,
        )


class Receipt(BaseModel):
    """What happened when an adapter ran an Action.

    Exit status, captured output and timing. A non-zero exit, a missing
    tool or a timeout all arrive here as ``status="failed"``.
    """

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        """Not executed: dry-run, or nothing to do."""
        return self.status == "skipped"

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **kwargs: Any) -> Receipt:
        """A skipped receipt; ``reason`` is kept as the output."""
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **kwargs)
