"""
Spotlight adapter — find manually installed macOS application bundles.

A cask is only the install channel; a user may have dragged the app
into /Applications by hand. ``mdfind`` answers that, but it exits 0
even when nothing matches, so presence is judged by its output.
"""

from __future__ import annotations

import shutil

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.adapters.runner import run_command
from devbox.core.models.action import Receipt


def bundle_query(app_name: str) -> str:
    """Spotlight query for an application bundle named ``<app_name>.app``."""
    safe = app_name.replace("'", "")
    return (
        "kMDItemContentType == 'com.apple.application-bundle' "
        f"&& kMDItemFSName == '{safe}.app'"
    )


class SpotlightAdapter(Adapter):
    """Search for ``<unit>.app`` bundles with mdfind.

    Returns an ok receipt listing the matching paths, or a failed
    receipt when the search fails or finds nothing.
    """

    operations = frozenset({"search"})

    @property
    def name(self) -> str:
        return "spotlight"

    def is_available(self) -> bool:
        return shutil.which("mdfind") is not None

    def execute(self, context: ExecutionContext) -> Receipt:
        receipt = run_command(
            ["mdfind", bundle_query(context.unit)],
            adapter=self.name,
            action_id=context.action.id,
            timeout=30,
        )
        if receipt.ok and not receipt.output.strip():
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"No application bundle named {context.unit}.app",
            )
        return receipt
