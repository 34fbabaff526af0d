"""
Domain models — Pydantic types for devbox.

All models are re-exported here for convenient access:

    from devbox.core.models import Action, Receipt, PlatformFacts, Catalog
"""

from devbox.core.models.action import Action, Receipt
from devbox.core.models.bundle import BundleManifest, PluginSource
from devbox.core.models.catalog import Catalog, ToolDeclaration
from devbox.core.models.config import DevboxConfig
from devbox.core.models.platform import PlatformFacts
from devbox.core.models.state import BackupRecord, DevboxState, RunRecord

__all__ = [
    # action.py
    "Action",
    # state.py
    "BackupRecord",
    # bundle.py
    "BundleManifest",
    # catalog.py
    "Catalog",
    # config.py
    "DevboxConfig",
    "DevboxState",
    # platform.py
    "PlatformFacts",
    "PluginSource",
    "Receipt",
    "RunRecord",
    "ToolDeclaration",
]
