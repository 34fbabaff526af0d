"""
Status use case — last run, pending backups and adapter availability.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from devbox.adapters.factory import build_registry
from devbox.core.config.loader import ConfigError, load_config
from devbox.core.detection.platform import detect_platform
from devbox.core.models.platform import PlatformFacts
from devbox.core.models.state import DevboxState
from devbox.core.persistence.audit import DEFAULT_AUDIT_FILE, AuditEntry, AuditWriter
from devbox.core.persistence.state_file import default_state_path, load_state
from devbox.core.services.backup_ops import list_backups


@dataclass
class StatusResult:
    """Aggregated devbox status."""

    facts: PlatformFacts | None = None
    state: DevboxState | None = None
    state_path: Path | None = None
    backups: list[dict] = field(default_factory=list)
    recent_runs: list[AuditEntry] = field(default_factory=list)
    adapters: dict[str, dict] = field(default_factory=dict)
    error: str | None = None

    @property
    def pending_backups(self) -> list[dict]:
        return [b for b in self.backups if not b["swept"]]

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        if self.facts:
            result["platform"] = {
                "os": self.facts.os_family,
                "arch": self.facts.arch,
                "home": str(self.facts.home),
                "distro": list(self.facts.distro_like),
            }
        result["state_path"] = str(self.state_path) if self.state_path else None
        if self.state:
            result["last_run"] = self.state.last_run.model_dump(mode="json")
        result["pending_backups"] = self.pending_backups
        result["recent_runs"] = [e.model_dump(mode="json") for e in self.recent_runs]
        result["adapters"] = self.adapters
        return result


def get_status(
    config_path: Path | None = None,
    *,
    facts: PlatformFacts | None = None,
    now: datetime | None = None,
    recent: int = 5,
) -> StatusResult:
    """Collect status for ``devbox status``."""
    result = StatusResult()

    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    facts = facts or detect_platform()
    result.facts = facts
    result.state_path = default_state_path(facts, config.state_dir)
    result.state = load_state(result.state_path)
    result.backups = list_backups(result.state, now)
    result.recent_runs = AuditWriter(result.state_path.parent / DEFAULT_AUDIT_FILE).read_recent(recent)
    result.adapters = build_registry(facts).adapter_status()
    return result
