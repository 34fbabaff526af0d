"""
Provision use case — the workstation pipeline.

    sweep → backup → bootstrap → tools → runtime → editor

Every stage checks before it acts, so running provision twice leaves
the machine as the first run did (plus one more backup of the files
the first run wrote).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from devbox.adapters.registry import AdapterRegistry
from devbox.core.errors import DevboxError
from devbox.core.engine.pipeline import FAIL_FAST, PipelineReport, Stage, run_pipeline
from devbox.core.models.catalog import Catalog
from devbox.core.models.config import DevboxConfig
from devbox.core.models.platform import PlatformFacts
from devbox.core.services.backup_ops import BackupResult, SweepResult, backup_configs, sweep_backups
from devbox.core.services.bootstrap_ops import bootstrap
from devbox.core.services.editor_ops import (
    RenderOptions,
    ensure_plug_bootstrap,
    install_plugins,
    render_config,
    write_config,
)
from devbox.core.services.install_ops import InstallReport, install_catalog, select_manager
from devbox.core.services.runtime_ops import setup_runtime
from devbox.core.use_cases.common import prepare, record_run

logger = logging.getLogger(__name__)

STAGE_NAMES = ("backup", "bootstrap", "tools", "runtime", "editor")


@dataclass
class ProvisionResult:
    """Result of a provision run."""

    report: PipelineReport | None = None
    facts: PlatformFacts | None = None
    sweep: SweepResult | None = None
    backup: BackupResult | None = None
    installs: list[InstallReport] = field(default_factory=list)
    editor_config: Path | None = None
    config_changed: bool = False
    error: str | None = None

    @property
    def installed(self) -> list[str]:
        return [name for r in self.installs for name in r.installed]

    @property
    def ok(self) -> bool:
        return self.error is None and (self.report is None or self.report.status != "failed")

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
        if self.facts:
            result["platform"] = {
                "os": self.facts.os_family,
                "arch": self.facts.arch,
                "home": str(self.facts.home),
            }
        if self.sweep:
            result["sweep"] = self.sweep.to_dict()
        if self.backup:
            result["backup"] = self.backup.to_dict()
        result["installs"] = [r.to_dict() for r in self.installs]
        if self.editor_config:
            result["editor_config"] = str(self.editor_config)
            result["config_changed"] = self.config_changed
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def workstation_catalogs(config: DevboxConfig, manager: str) -> list[Catalog]:
    """Catalogs the tools stage runs for a given manager."""
    if manager == "brew":
        return [config.catalogs.brew_catalog(), config.catalogs.cask_catalog()]
    return [config.catalogs.apt_catalog()]


def run_provision(
    *,
    config: DevboxConfig | None = None,
    config_path: Path | None = None,
    facts: PlatformFacts | None = None,
    registry: AdapterRegistry | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    only: Iterable[str] = (),
    skip: Iterable[str] = (),
    now: datetime | None = None,
) -> ProvisionResult:
    """Provision this machine.

    Args:
        config: Pre-loaded config (otherwise loaded from ``config_path``).
        config_path: Optional explicit path to devbox.yml.
        facts: Host facts (otherwise detected).
        registry: Pre-configured adapter registry.
        dry_run: Run presence checks only; change nothing.
        mock_mode: Replace every adapter with a mock.
        only: Run only these stages.
        skip: Skip these stages.
        now: Clock for backup naming and sweeping.

    Returns:
        ProvisionResult. ``error`` is set when the run could not start
        or a fail-fast stage failed.
    """
    result = ProvisionResult()

    try:
        env = prepare(
            config=config,
            config_path=config_path,
            facts=facts,
            registry=registry,
            mock_mode=mock_mode,
            dry_run=dry_run,
        )
    except DevboxError as e:
        result.error = str(e)
        return result

    cfg = env.config
    result.facts = env.facts
    result.sweep = sweep_backups(env.state, now, dry_run=dry_run)

    # Stages share the facts; bootstrap may extend PATH
    facts_ref = {"facts": env.facts}

    def _backup() -> dict:
        result.backup = backup_configs(
            facts_ref["facts"],
            cfg.backup.candidates,
            registry=env.registry,
            now=now,
            retention_days=cfg.backup.retention_days,
            schedule_cleanup=cfg.backup.schedule_with_at,
            prefix=cfg.backup.directory_prefix,
            dry_run=dry_run,
        )
        if result.backup.record is not None:
            env.state.backups.append(result.backup.record)
        return result.backup.to_dict()

    def _bootstrap() -> dict:
        outcome = bootstrap(facts_ref["facts"], env.registry, login_profile=cfg.login_profile)
        if outcome.facts is not None:
            facts_ref["facts"] = outcome.facts
        return outcome.to_dict()

    def _tools() -> dict:
        current = facts_ref["facts"]
        manager = select_manager(current)
        for catalog in workstation_catalogs(cfg, manager):
            result.installs.append(
                install_catalog(catalog, current, env.registry, manager=manager, fail_fast=True)
            )
        return {"manager": manager, "installed": result.installed}

    def _runtime() -> dict:
        current = facts_ref["facts"]
        runtime = setup_runtime(current, env.registry, cfg.runtime, manager=select_manager(current))
        result.installs.append(runtime.libraries)
        return runtime.to_dict()

    def _editor() -> dict:
        current = facts_ref["facts"]
        target = current.home_path(cfg.editor.config_dir) / cfg.editor.config_file
        text = render_config(current, RenderOptions(plugged_dir=cfg.editor.plugged_dir))
        result.editor_config = target
        if dry_run:
            logger.info("[dry-run] Would write %s", target)
        else:
            result.config_changed = write_config(target, text)
        ensure_plug_bootstrap(
            current,
            env.registry,
            plug_path=cfg.editor.plug_path,
            plug_url=cfg.editor.plug_url,
        )
        details = {"config": str(target), "changed": result.config_changed}
        if cfg.editor.install_plugins:
            details["plugins"] = install_plugins(env.registry).status
        return details

    stages = [
        Stage("backup", _backup, FAIL_FAST, "move existing dotfiles aside"),
        Stage("bootstrap", _bootstrap, FAIL_FAST, "package manager"),
        Stage("tools", _tools, FAIL_FAST, "tool catalogs"),
        Stage("runtime", _runtime, FAIL_FAST, "Python and libraries"),
        Stage("editor", _editor, FAIL_FAST, "Neovim configuration"),
    ]

    try:
        report = run_pipeline(stages, env.registry, kind="provision", only=only, skip=skip)
    except DevboxError as e:
        result.error = str(e)
        return result
    result.report = report

    failed = [s for s in report.stages if s.status == "failed"]
    if failed:
        result.error = failed[0].error

    if dry_run:
        return result

    record_run(
        env,
        report,
        installed=result.installed,
        backed_up=result.backup.sources if result.backup else [],
        context={"platform": env.facts.os_family, "mock": env.registry.mock_mode},
    )
    if env.facts is not facts_ref["facts"]:
        logger.warning("Open a new terminal (or source ~/%s) to pick up the new PATH", cfg.login_profile)
    return result
