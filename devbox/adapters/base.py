"""
Adapter base — the protocol contract between stages and external tools.

Stages never call brew, apt, git or scp directly. They build an
Action and hand it to the AdapterRegistry, which picks the adapter
and returns a Receipt. That seam is what lets tests replace a package
manager with a stub and count its calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from devbox.core.models.action import Action, Receipt
from devbox.core.models.platform import PlatformFacts


class ExecutionContext(BaseModel):
    """One action plus the host facts and flags it runs under."""

    action: Action
    facts: PlatformFacts | None = None
    cwd: str | None = None
    dry_run: bool = False
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def operation(self) -> str:
        return self.action.operation

    @property
    def unit(self) -> str:
        return self.action.unit

    @property
    def needs_sudo(self) -> bool:
        """Whether OS-level commands must be prefixed with sudo."""
        return self.facts is not None and not self.facts.is_root


class Adapter(ABC):
    """Wraps one external tool (brew, apt, git, scp, at, ...).

    Subclasses name the tool, say whether its executable is on PATH and
    turn each supported operation into a command line. Whatever the
    command does, the result comes back as a Receipt.
    """

    #: Operations this adapter understands; empty means "any".
    operations: frozenset[str] = frozenset()

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key; also the first part of every action id."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the tool can run here (a PATH lookup, nothing slower)."""

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """``(True, "")``, or ``(False, reason)`` for an action this adapter can't run."""
        if self.operations and context.operation not in self.operations:
            valid = ", ".join(sorted(self.operations))
            return False, f"Unknown operation '{context.operation}'. Valid: {valid}"
        return True, ""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Run the operation. Failures are returned, not raised."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
