"""
curl adapter — download a single file to a local path.

Only used for small bootstrap files (vim-plug's ``plug.vim``).
"""

from __future__ import annotations

import shutil

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.adapters.runner import run_command
from devbox.core.models.action import Receipt


class CurlAdapter(Adapter):
    """Fetch ``url`` into ``dest``, creating parent directories."""

    operations = frozenset({"fetch"})

    @property
    def name(self) -> str:
        return "curl"

    def is_available(self) -> bool:
        return shutil.which("curl") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = super().validate(context)
        if not ok:
            return ok, msg
        if not context.params.get("url") or not context.params.get("dest"):
            return False, "Missing required params: 'url' and 'dest'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        return run_command(
            [
                "curl", "-fsSL", "--create-dirs",
                "-o", str(context.params["dest"]),
                context.params["url"],
            ],
            adapter=self.name,
            action_id=context.action.id,
            timeout=context.params.get("timeout", 120),
        )
