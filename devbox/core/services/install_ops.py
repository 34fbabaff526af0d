"""
Declarative tool installer — check, then install only what is missing.

Each ToolDeclaration is an independent unit: query presence, install if
absent. Catalog order never changes the final state. Under fail-fast
the first failed install stops the stage; under fail-soft it is
recorded and the loop moves on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from devbox.adapters.registry import AdapterRegistry
from devbox.core.errors import StageFailed
from devbox.core.models.action import Action
from devbox.core.models.catalog import Catalog, ToolDeclaration
from devbox.core.models.platform import PlatformFacts
from devbox.core.services.presence import is_tool_present

logger = logging.getLogger(__name__)


@dataclass
class InstallOutcome:
    name: str
    status: str                 # present, installed, planned, skipped, failed
    channel: str = "formula"
    error: str | None = None


@dataclass
class InstallReport:
    """Per-tool outcomes of one catalog pass."""

    catalog: str = ""
    manager: str = ""
    outcomes: list[InstallOutcome] = field(default_factory=list)

    def _named(self, status: str) -> list[str]:
        return [o.name for o in self.outcomes if o.status == status]

    @property
    def installed(self) -> list[str]:
        return self._named("installed")

    @property
    def present(self) -> list[str]:
        return self._named("present")

    @property
    def planned(self) -> list[str]:
        return self._named("planned")

    @property
    def skipped(self) -> list[str]:
        return self._named("skipped")

    @property
    def failed(self) -> list[str]:
        return self._named("failed")

    def to_dict(self) -> dict:
        return {
            "catalog": self.catalog,
            "manager": self.manager,
            "installed": self.installed,
            "present": self.present,
            "planned": self.planned,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": {o.name: o.error for o in self.outcomes if o.error},
        }


def select_manager(facts: PlatformFacts) -> str:
    """Package manager adapter name for this host."""
    if facts.is_macos:
        return "brew"
    if facts.has_executable("apt-get") or "debian" in facts.distro_like:
        return "apt"
    return select_rpm_manager(facts)


def select_rpm_manager(facts: PlatformFacts) -> str:
    """``dnf`` when available, otherwise ``yum``."""
    return "dnf" if facts.has_executable("dnf") else "yum"


def install_tool(
    tool: ToolDeclaration,
    facts: PlatformFacts,
    registry: AdapterRegistry,
    *,
    manager: str,
    stage: str = "tools",
) -> InstallOutcome:
    """Check one tool and install it if absent. Never raises."""
    if tool.is_cask and manager != "brew":
        logger.warning("Skipping cask %s: no %s equivalent", tool.name, manager)
        return InstallOutcome(tool.name, "skipped", tool.channel)

    if is_tool_present(registry, facts, tool, manager, stage=stage):
        logger.info("%s is already installed", tool.name)
        return InstallOutcome(tool.name, "present", tool.channel)

    logger.info("Installing %s via %s ...", tool.name, manager)
    receipt = registry.execute(
        Action.build(manager, "install", tool.name, stage=stage, kind=tool.channel)
    )
    if receipt.ok:
        logger.info("Installed %s", tool.name)
        return InstallOutcome(tool.name, "installed", tool.channel)
    if receipt.skipped:
        logger.info("%s", receipt.output)
        return InstallOutcome(tool.name, "planned", tool.channel)
    return InstallOutcome(tool.name, "failed", tool.channel, error=receipt.error)


def install_catalog(
    catalog: Catalog,
    facts: PlatformFacts,
    registry: AdapterRegistry,
    *,
    manager: str,
    fail_fast: bool = True,
    stage: str = "tools",
) -> InstallReport:
    """Run every declaration in ``catalog`` through ``install_tool``.

    Raises:
        StageFailed: Under ``fail_fast``, on the first failed install.
    """
    report = InstallReport(catalog=catalog.name, manager=manager)
    logger.info("Catalog %s: %d tool(s) via %s", catalog.name, catalog.size, manager)

    for tool in catalog.tools:
        outcome = install_tool(tool, facts, registry, manager=manager, stage=stage)
        report.outcomes.append(outcome)
        if outcome.status != "failed":
            continue
        if fail_fast:
            raise StageFailed(stage, f"{manager} could not install {tool.name}: {outcome.error}")
        logger.warning("Could not install %s (continuing): %s", tool.name, outcome.error)

    return report
