"""
Package manager adapter base.

Every package manager answers the same three operations:

    query    — is ``unit`` installed?  ok receipt = yes, failed = no
    install  — install ``unit``
    refresh  — update the package index (no-op where meaningless)

Subclasses only describe the command lines; execution, sudo and
receipts are shared.
"""

from __future__ import annotations

import shutil
from abc import abstractmethod
from typing import Any

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.adapters.runner import run_command
from devbox.core.models.action import Receipt


class PackageManagerAdapter(Adapter):
    """Shared execution for brew, apt, dnf/yum and pip.

    Action params:
        kind (str): Channel hint — ``formula``, ``cask``, ``os``, ``group``.
        timeout (int): Timeout in seconds.
    """

    operations = frozenset({"query", "install", "refresh"})

    #: Executable looked up on the host PATH
    executable: str = ""
    #: Whether install/refresh run through sudo when not root
    uses_sudo: bool = False
    #: Extra environment for every command
    env: dict[str, str] = {}

    @property
    def name(self) -> str:
        return self.executable

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def resolve(self, context: ExecutionContext) -> str:
        """Absolute executable path from the host facts, else the bare name."""
        if context.facts is not None:
            found = context.facts.which(self.executable)
            if found:
                return found
        return self.executable

    @abstractmethod
    def query_command(self, exe: str, unit: str, params: dict[str, Any]) -> list[list[str]]:
        """Commands tried in order; the unit is present if any exits 0."""

    @abstractmethod
    def install_command(self, exe: str, unit: str, params: dict[str, Any]) -> list[str]:
        """Command that installs ``unit``."""

    def refresh_command(self, exe: str) -> list[str] | None:
        """Command that refreshes the package index, or None."""
        return None

    def check_query_output(self, receipt: Receipt) -> bool:
        """Hook for managers whose query exits 0 for absent packages."""
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = super().validate(context)
        if not ok:
            return ok, msg
        if context.operation in ("query", "install") and not context.unit:
            return False, f"Missing package name for '{context.operation}'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        exe = self.resolve(context)
        timeout = context.params.get("timeout", 1800)
        sudo = self.uses_sudo and context.needs_sudo

        if context.operation == "query":
            return self._query(context, exe)

        if context.operation == "refresh":
            cmd = self.refresh_command(exe)
            if cmd is None:
                return Receipt.skip(
                    adapter=self.name,
                    action_id=context.action.id,
                    reason=f"{self.name} has no index to refresh",
                )
            return run_command(
                cmd,
                adapter=self.name,
                action_id=context.action.id,
                needs_sudo=sudo,
                timeout=timeout,
                env_overrides=self.env or None,
            )

        return run_command(
            self.install_command(exe, context.unit, context.params),
            adapter=self.name,
            action_id=context.action.id,
            needs_sudo=sudo,
            timeout=timeout,
            env_overrides=self.env or None,
        )

    def _query(self, context: ExecutionContext, exe: str) -> Receipt:
        last: Receipt | None = None
        for cmd in self.query_command(exe, context.unit, context.params):
            last = run_command(
                cmd,
                adapter=self.name,
                action_id=context.action.id,
                timeout=60,
            )
            if last.ok and self.check_query_output(last):
                return last
        if last is not None and last.ok:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"{context.unit} is not installed",
                metadata=last.metadata,
            )
        return last or Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error="No query command",
        )
