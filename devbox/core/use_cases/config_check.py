"""
Config check use case — validate devbox.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from devbox.core.config.loader import ConfigError, find_config_file, load_config
from devbox.core.errors import BundleError
from devbox.core.models.config import DevboxConfig
from devbox.core.services.bundle_ops import plugin_sources


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: DevboxConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        catalogs = self.config.catalogs if self.config else None
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "formulae": len(catalogs.formulae) if catalogs else 0,
            "casks": len(catalogs.casks) if catalogs else 0,
            "apt": len(catalogs.apt) if catalogs else 0,
            "libraries": len(self.config.runtime.libraries) if self.config else 0,
            "plugins": len(self.config.bundle.plugins) if self.config else 0,
            "remote_packages": (
                len(self.config.remote.group_packages) + len(self.config.remote.packages)
                if self.config else 0
            ),
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate devbox configuration and report issues.

    Args:
        config_path: Optional explicit path to devbox.yml. Without one
            the usual search applies; no file at all means defaults.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    result.config_path = config_path
    if config_path is None:
        result.warnings.append("No devbox.yml found — using packaged defaults.")

    try:
        config = load_config(config_path, search=False)
        result.config = config
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Plugin directory names must not collide
    try:
        plugin_sources(config.bundle.plugins, allow_duplicates=False)
    except BundleError as e:
        if config.bundle.allow_duplicates:
            result.warnings.append(f"{e} (allowed: later URL wins)")
        else:
            result.errors.append(str(e))

    if not config.backup.candidates:
        result.warnings.append("No backup candidates: existing dotfiles will not be preserved.")
    if config.backup.retention_days == 0:
        result.warnings.append("backup.retention_days is 0: backups are swept on the next run.")
    if not (config.catalogs.formulae or config.catalogs.apt):
        result.warnings.append("Tool catalogs are empty — the tools stage has nothing to do.")
    if not config.bundle.plugins:
        result.warnings.append("bundle.plugins is empty — devbox bundle has nothing to archive.")
    if config.editor.dedupe_path_line:
        result.warnings.append("editor.dedupe_path_line is on: repeated PATH lines are skipped.")

    result.valid = len(result.errors) == 0
    return result
