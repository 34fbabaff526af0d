"""
scp adapter — copy a local file to a remote host.

Authentication is whatever the user's ssh setup provides; scp may
prompt on the terminal, which is why no input is piped.
"""

from __future__ import annotations

import shutil

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.adapters.runner import run_command
from devbox.core.models.action import Receipt


def remote_target(user: str, host: str, path: str) -> str:
    """``user@host:path`` (user optional)."""
    prefix = f"{user}@{host}" if user else host
    return f"{prefix}:{path}"


class ScpAdapter(Adapter):
    """Copy ``source`` to ``user@host:path``.

    Action params:
        source (str): Local file.
        user (str): Remote user (may be empty).
        host (str): Remote host.
        path (str): Remote destination path.
    """

    operations = frozenset({"copy"})

    @property
    def name(self) -> str:
        return "scp"

    def is_available(self) -> bool:
        return shutil.which("scp") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = super().validate(context)
        if not ok:
            return ok, msg
        for key in ("source", "host", "path"):
            if not context.params.get(key):
                return False, f"Missing required param: '{key}'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        p = context.params
        target = remote_target(p.get("user", ""), p["host"], p["path"])
        receipt = run_command(
            ["scp", "-q", str(p["source"]), target],
            adapter=self.name,
            action_id=context.action.id,
            timeout=p.get("timeout", 1800),
        )
        receipt.metadata["target"] = target
        return receipt
