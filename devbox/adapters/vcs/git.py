"""
Git adapter — shallow clones and fast-forward refreshes of plugin repos.

Operations:
    clone   — ``git clone --depth N <url> <dest>``
    update  — ``git -C <dest> pull --ff-only``
    origin  — ``git -C <dest> remote get-url origin`` (read-only)
"""

from __future__ import annotations

import shutil

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.adapters.runner import run_command
from devbox.core.models.action import Receipt


class GitAdapter(Adapter):
    """Clone or update a repository.

    Action params:
        url (str): Remote URL (clone).
        dest (str): Target working directory.
        depth (int): Clone depth; 0 means full history (default: 1).
    """

    operations = frozenset({"clone", "update", "origin"})

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return shutil.which("git") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = super().validate(context)
        if not ok:
            return ok, msg
        if not context.params.get("dest"):
            return False, "Missing required param: 'dest'"
        if context.operation == "clone" and not context.params.get("url"):
            return False, "Missing required param: 'url'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        dest = str(context.params["dest"])
        if context.operation == "update":
            cmd = ["git", "-C", dest, "pull", "--ff-only", "--quiet"]
        elif context.operation == "origin":
            cmd = ["git", "-C", dest, "remote", "get-url", "origin"]
        else:
            cmd = ["git", "clone", "--quiet"]
            depth = int(context.params.get("depth", 1))
            if depth > 0:
                cmd += ["--depth", str(depth)]
            cmd += [context.params["url"], dest]

        return run_command(
            cmd,
            adapter=self.name,
            action_id=context.action.id,
            timeout=context.params.get("timeout", 300),
            env_overrides={"GIT_TERMINAL_PROMPT": "0"},
        )
