"""
Package manager bootstrap — make sure the host's installer is usable.

macOS: install Homebrew if it is missing, then hook ``brew shellenv``
into the login profile. Debian-family Linux: refresh the apt index.
Anything else: nothing to bootstrap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from devbox.adapters.packages.homebrew import INSTALL_SCRIPT_URL, brew_prefix
from devbox.adapters.registry import AdapterRegistry
from devbox.core.errors import StageFailed
from devbox.core.models.action import Action
from devbox.core.models.platform import PlatformFacts
from devbox.core.services.install_ops import select_manager
from devbox.core.services.profile_ops import ensure_line, shellenv_line

logger = logging.getLogger(__name__)

STAGE = "bootstrap"


@dataclass
class BootstrapResult:
    manager: str = ""
    installed: bool = False
    refreshed: bool = False
    profile_hooked: bool = False
    facts: PlatformFacts | None = None     # updated PATH after an install

    def to_dict(self) -> dict:
        return {
            "manager": self.manager,
            "installed": self.installed,
            "refreshed": self.refreshed,
            "profile_hooked": self.profile_hooked,
        }


def brew_bin_dir(facts: PlatformFacts) -> str:
    return f"{brew_prefix(facts.arch)}/bin"


def bootstrap_homebrew(
    facts: PlatformFacts,
    registry: AdapterRegistry,
    *,
    login_profile: str = ".bash_profile",
) -> BootstrapResult:
    """Install Homebrew if absent and register its shellenv hook.

    Raises:
        StageFailed: If the installer fails.
    """
    result = BootstrapResult(manager="brew", facts=facts)

    if facts.has_executable("brew"):
        logger.info("Homebrew is already installed")
        return result

    logger.info("Installing Homebrew ...")
    receipt = registry.execute(
        Action.build(
            "shell",
            "run",
            "homebrew-install",
            stage=STAGE,
            command=f'/bin/bash -c "$(curl -fsSL {INSTALL_SCRIPT_URL})"',
            timeout=3600,
        )
    )
    if receipt.failed:
        raise StageFailed(STAGE, f"Homebrew installer failed: {receipt.error}")
    if receipt.skipped:
        return result

    result.installed = True
    bin_dir = brew_bin_dir(facts)
    profile = facts.home_path(login_profile)
    result.profile_hooked = ensure_line(profile, shellenv_line(f"{bin_dir}/brew"))

    # Subsequent stages resolve brew through the updated PATH
    result.facts = facts.with_path(bin_dir, f"{brew_prefix(facts.arch)}/sbin")
    registry.set_facts(result.facts)
    return result


def refresh_index(facts: PlatformFacts, registry: AdapterRegistry, manager: str) -> bool:
    """Refresh the package index. Returns whether a refresh ran.

    Raises:
        StageFailed: If the refresh command fails.
    """
    receipt = registry.execute(Action.build(manager, "refresh", stage=STAGE))
    if receipt.failed:
        raise StageFailed(STAGE, f"{manager} index refresh failed: {receipt.error}")
    return receipt.ok


def bootstrap(
    facts: PlatformFacts,
    registry: AdapterRegistry,
    *,
    login_profile: str = ".bash_profile",
) -> BootstrapResult:
    """Platform-dispatching entry point for the bootstrap stage."""
    if facts.is_macos:
        return bootstrap_homebrew(facts, registry, login_profile=login_profile)

    manager = select_manager(facts)
    result = BootstrapResult(manager=manager, facts=facts)
    if manager == "apt":
        result.refreshed = refresh_index(facts, registry, manager)
    else:
        logger.info("Nothing to bootstrap for %s", manager)
    return result
