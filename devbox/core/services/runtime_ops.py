"""
Language runtime setup — Python plus the fixed scientific library list.

The interpreter comes from the platform package manager; pip is then
upgraded and each library checked and installed system-wide.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from devbox.adapters.registry import AdapterRegistry
from devbox.core.errors import StageFailed
from devbox.core.models.action import Action
from devbox.core.models.catalog import Catalog, ToolDeclaration
from devbox.core.models.config import RuntimeSettings
from devbox.core.models.platform import PlatformFacts
from devbox.core.services.install_ops import InstallReport, install_catalog, install_tool

logger = logging.getLogger(__name__)

STAGE = "runtime"


@dataclass
class RuntimeResult:
    interpreter: str = ""
    interpreter_status: str = ""
    pip_upgraded: bool = False
    libraries: InstallReport = field(default_factory=InstallReport)

    def to_dict(self) -> dict:
        return {
            "interpreter": self.interpreter,
            "interpreter_status": self.interpreter_status,
            "pip_upgraded": self.pip_upgraded,
            "libraries": self.libraries.to_dict(),
        }


def setup_runtime(
    facts: PlatformFacts,
    registry: AdapterRegistry,
    settings: RuntimeSettings,
    *,
    manager: str,
) -> RuntimeResult:
    """Ensure the interpreter, upgrade pip, install the library list.

    Raises:
        StageFailed: On any failed install (the stage is fail-fast).
    """
    package = settings.brew_formula if manager == "brew" else settings.apt_package
    channel = "formula" if manager == "brew" else "os"
    result = RuntimeResult(interpreter=package)

    outcome = install_tool(
        ToolDeclaration(name=package, channel=channel),
        facts,
        registry,
        manager=manager,
        stage=STAGE,
    )
    if outcome.status == "failed":
        raise StageFailed(STAGE, f"Could not install {package}: {outcome.error}")
    result.interpreter_status = outcome.status

    if settings.upgrade_pip:
        receipt = registry.execute(
            Action.build("pip", "install", "pip", stage=STAGE, kind="pip", upgrade=True)
        )
        if receipt.failed:
            raise StageFailed(STAGE, f"pip upgrade failed: {receipt.error}")
        result.pip_upgraded = receipt.ok

    libraries = Catalog.from_names("libraries", settings.libraries, "pip")
    result.libraries = install_catalog(
        libraries, facts, registry, manager="pip", fail_fast=True, stage=STAGE
    )
    return result
