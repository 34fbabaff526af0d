"""
Presence predicates — the existence checks every stage runs first.

Each predicate asks exactly one question and answers True or False.
A query that cannot be answered (tool missing, non-zero exit) counts
as "not present", so the caller goes on to install. Nothing here
raises.
"""

from __future__ import annotations

import logging
from pathlib import Path

from devbox.adapters.registry import AdapterRegistry
from devbox.core.models.action import Action
from devbox.core.models.catalog import ToolDeclaration
from devbox.core.models.platform import PlatformFacts

logger = logging.getLogger(__name__)


def is_package_installed(
    registry: AdapterRegistry,
    manager: str,
    name: str,
    kind: str = "formula",
    *,
    stage: str = "",
) -> bool:
    """Ask ``manager`` whether ``name`` is installed."""
    receipt = registry.execute(
        Action.build(manager, "query", name, stage=stage, read_only=True, kind=kind)
    )
    if not receipt.ok:
        logger.debug("%s query %s: not present (%s)", manager, name, receipt.error)
    return receipt.ok


def is_app_installed(registry: AdapterRegistry, app_name: str, *, stage: str = "") -> bool:
    """Search for an ``<app_name>.app`` bundle anywhere Spotlight indexes."""
    receipt = registry.execute(
        Action.build("spotlight", "search", app_name, stage=stage, read_only=True)
    )
    if receipt.ok:
        logger.debug("Found %s.app: %s", app_name, receipt.output.splitlines()[:1])
    return receipt.ok


def is_tool_present(
    registry: AdapterRegistry,
    facts: PlatformFacts,
    tool: ToolDeclaration,
    manager: str,
    *,
    stage: str = "",
) -> bool:
    """Manager query first; casks on macOS also count if the app exists."""
    if is_package_installed(registry, manager, tool.name, tool.channel, stage=stage):
        return True
    if tool.is_cask and facts.is_macos:
        return is_app_installed(registry, tool.bundle_name, stage=stage)
    return False


def path_exists(path: Path) -> bool:
    """True for files, directories and dangling symlinks alike."""
    return path.exists() or path.is_symlink()


def dir_exists(path: Path) -> bool:
    return path.is_dir()
