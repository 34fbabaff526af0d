"""
Shared plumbing for the run use cases — config, facts, registry, persistence.

Each use case accepts pre-built pieces (tests inject a hand-made
PlatformFacts and a stub registry) and builds whatever is missing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from devbox.adapters.factory import build_registry
from devbox.adapters.mock import MockAdapter
from devbox.adapters.registry import AdapterRegistry
from devbox.core.config.loader import load_config
from devbox.core.detection.platform import detect_platform
from devbox.core.engine.pipeline import PipelineReport, write_audit_entry
from devbox.core.models.config import DevboxConfig
from devbox.core.models.platform import PlatformFacts
from devbox.core.models.state import DevboxState, RunRecord
from devbox.core.persistence.audit import DEFAULT_AUDIT_FILE, AuditWriter
from devbox.core.persistence.state_file import default_state_path, load_state, save_state

logger = logging.getLogger(__name__)


@dataclass
class RunEnvironment:
    """Everything a run needs besides its own arguments."""

    config: DevboxConfig
    facts: PlatformFacts
    registry: AdapterRegistry
    state_path: Path
    state: DevboxState

    @property
    def audit_path(self) -> Path:
        return self.state_path.parent / DEFAULT_AUDIT_FILE


def mock_registry_adapter() -> MockAdapter:
    """Mock used by ``--mock``: nothing is installed, every install succeeds."""
    mock = MockAdapter("mock")
    mock.fail_operation("query", "[mock] not installed")
    mock.fail_operation("search", "[mock] no application bundle")
    return mock


def prepare(
    *,
    config: DevboxConfig | None = None,
    config_path: Path | None = None,
    facts: PlatformFacts | None = None,
    registry: AdapterRegistry | None = None,
    mock_mode: bool = False,
    dry_run: bool = False,
) -> RunEnvironment:
    """Resolve config, facts, registry and state for a run.

    Raises:
        ConfigError: If the configuration cannot be loaded.
    """
    if config is None:
        config = load_config(config_path)
    if facts is None:
        facts = detect_platform()
    if registry is None:
        registry = build_registry(
            facts,
            mock_mode=mock_mode,
            dry_run=dry_run,
            pip_executable=config.runtime.pip_executable,
        )
        if mock_mode:
            registry.set_mock_mode(True, mock_registry_adapter())
    elif registry.facts is None:
        registry.set_facts(facts)

    state_path = default_state_path(facts, config.state_dir)
    return RunEnvironment(
        config=config,
        facts=facts,
        registry=registry,
        state_path=state_path,
        state=load_state(state_path),
    )


def record_run(
    env: RunEnvironment,
    report: PipelineReport,
    *,
    installed: list[str] | None = None,
    backed_up: list[str] | None = None,
    context: dict | None = None,
) -> None:
    """Save the run summary to state and append it to the audit ledger."""
    env.state.last_run = RunRecord(
        run_id=report.run_id,
        kind=report.kind,
        started_at=report.started_at,
        ended_at=report.ended_at,
        status=report.status,
        stages=report.stage_statuses(),
    )
    save_state(env.state, env.state_path)
    write_audit_entry(
        report,
        AuditWriter(env.audit_path),
        installed=installed,
        backed_up=backed_up,
        context=context,
    )
