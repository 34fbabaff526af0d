"""
Shell command adapter — run an arbitrary command and capture output.

Used for the one-off steps that have no dedicated adapter, chiefly the
Homebrew installer (``/bin/bash -c "$(curl ...)"``), which needs a real
shell to expand the command substitution.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.adapters.runner import run_command
from devbox.core.models.action import Receipt

logger = logging.getLogger(__name__)


class ShellCommandAdapter(Adapter):
    """Execute shell commands and capture output.

    Action params:
        command (str): Command string, run through ``/bin/sh -c``.
        argv (list[str]): Alternative to ``command``; executed directly.
        timeout (int): Timeout in seconds (default: 900).
        sudo (bool): Prefix with sudo when not root (default: False).
    """

    operations = frozenset({"run"})

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = super().validate(context)
        if not ok:
            return ok, msg

        if not context.params.get("command") and not context.params.get("argv"):
            return False, "Missing required param: 'command' or 'argv'"

        if context.cwd and not Path(context.cwd).is_dir():
            return False, f"Working directory does not exist: {context.cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        argv = context.params.get("argv")
        if not argv:
            argv = ["/bin/sh", "-c", context.params["command"]]

        return run_command(
            list(argv),
            adapter=self.name,
            action_id=context.action.id,
            needs_sudo=bool(context.params.get("sudo")) and context.needs_sudo,
            timeout=context.params.get("timeout", 900),
            cwd=context.cwd,
        )
