"""
Default adapter wiring — every adapter devbox knows, registered once.
"""

from __future__ import annotations

from devbox.adapters.editor.neovim import NeovimAdapter
from devbox.adapters.packages.homebrew import HomebrewAdapter
from devbox.adapters.packages.pip import PipAdapter
from devbox.adapters.packages.system import AptAdapter, DnfAdapter
from devbox.adapters.registry import AdapterRegistry
from devbox.adapters.shell.command import ShellCommandAdapter
from devbox.adapters.system.scheduler import AtSchedulerAdapter
from devbox.adapters.system.spotlight import SpotlightAdapter
from devbox.adapters.transfer.curl import CurlAdapter
from devbox.adapters.transfer.scp import ScpAdapter
from devbox.adapters.vcs.git import GitAdapter
from devbox.core.models.platform import PlatformFacts


def build_registry(
    facts: PlatformFacts | None = None,
    *,
    mock_mode: bool = False,
    dry_run: bool = False,
    pip_executable: str = "pip3",
) -> AdapterRegistry:
    """A registry with the shell, package, OS, VCS, transfer and editor adapters."""
    registry = AdapterRegistry(facts=facts, mock_mode=mock_mode, dry_run=dry_run)
    for adapter in (
        ShellCommandAdapter(),
        HomebrewAdapter(),
        AptAdapter(),
        DnfAdapter("dnf"),
        DnfAdapter("yum"),
        PipAdapter(pip_executable),
        SpotlightAdapter(),
        AtSchedulerAdapter(),
        GitAdapter(),
        ScpAdapter(),
        CurlAdapter(),
        NeovimAdapter(),
    ):
        registry.register(adapter)
    return registry
