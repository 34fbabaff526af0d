"""Neovim adapter — headless plugin installation through vim-plug."""

from __future__ import annotations

import shutil

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.adapters.runner import run_command
from devbox.core.models.action import Receipt


class NeovimAdapter(Adapter):
    """Run ``nvim --headless +PlugInstall +qall``."""

    operations = frozenset({"plugin-install"})

    @property
    def name(self) -> str:
        return "nvim"

    def is_available(self) -> bool:
        return shutil.which("nvim") is not None

    def execute(self, context: ExecutionContext) -> Receipt:
        exe = "nvim"
        if context.facts is not None:
            exe = context.facts.which("nvim") or exe
        return run_command(
            [exe, "--headless", "+PlugInstall", "+qall"],
            adapter=self.name,
            action_id=context.action.id,
            timeout=context.params.get("timeout", 600),
        )
