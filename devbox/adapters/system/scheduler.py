"""
Scheduler adapter — register a deferred job with ``at``.

Fire-and-forget: a successful receipt only means ``at`` accepted the
job. Nothing here can observe whether it later ran.
"""

from __future__ import annotations

import shutil

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.adapters.runner import run_command
from devbox.core.models.action import Receipt


class AtSchedulerAdapter(Adapter):
    """Queue a shell command with ``at``.

    Action params:
        command (str): Shell command fed to ``at`` on stdin.
        when (str): Time spec, e.g. ``now + 30 days``.
    """

    operations = frozenset({"schedule"})

    @property
    def name(self) -> str:
        return "at"

    def is_available(self) -> bool:
        return shutil.which("at") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = super().validate(context)
        if not ok:
            return ok, msg
        if not context.params.get("command"):
            return False, "Missing required param: 'command'"
        if not context.params.get("when"):
            return False, "Missing required param: 'when'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        when = str(context.params["when"]).split()
        return run_command(
            ["at", *when],
            adapter=self.name,
            action_id=context.action.id,
            input_text=context.params["command"] + "\n",
            timeout=30,
        )
