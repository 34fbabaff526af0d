"""
Bundle use case — build the plugin archive for an offline host.

    sync → stage → archive → transfer
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from devbox.adapters.registry import AdapterRegistry
from devbox.core.errors import DevboxError
from devbox.core.engine.pipeline import FAIL_FAST, PipelineReport, Stage, run_pipeline
from devbox.core.models.bundle import BundleManifest, PluginSource
from devbox.core.models.config import DevboxConfig
from devbox.core.models.platform import PlatformFacts
from devbox.core.services.bundle_ops import (
    SyncReport,
    create_archive,
    plugin_sources,
    require_tools,
    stage_plugins,
    sync_sources,
    transfer_archive,
)
from devbox.core.use_cases.common import prepare, record_run

logger = logging.getLogger(__name__)


@dataclass
class BundleResult:
    """Result of a bundle run."""

    sources: list[PluginSource] = field(default_factory=list)
    sync: SyncReport | None = None
    staged: list[str] = field(default_factory=list)
    archive: Path | None = None
    manifest: BundleManifest | None = None
    target: str | None = None
    report: PipelineReport | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
        result["plugins"] = [s.name for s in self.sources]
        if self.sync:
            result["sync"] = self.sync.to_dict()
        if self.archive:
            result["archive"] = str(self.archive)
        if self.manifest:
            result["manifest"] = self.manifest.model_dump(mode="json")
        result["target"] = self.target
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def run_bundle(
    *,
    config: DevboxConfig | None = None,
    config_path: Path | None = None,
    facts: PlatformFacts | None = None,
    registry: AdapterRegistry | None = None,
    remote_user: str | None = None,
    remote_host: str | None = None,
    remote_path: str | None = None,
    archive_name: str | None = None,
    work_dir: Path | None = None,
    skip_transfer: bool = False,
    allow_duplicates: bool | None = None,
    now: datetime | None = None,
) -> BundleResult:
    """Clone, strip, archive and (optionally) copy the plugin set.

    Args:
        remote_user / remote_host / remote_path: scp destination;
            required unless ``skip_transfer``.
        archive_name: Archive file name (default from config).
        work_dir: Where clones, staging and the archive live
            (default ``~/<bundle.work_dir>``).
        skip_transfer: Build the archive only.
        allow_duplicates: Accept duplicate plugin names (later URL wins).
    """
    result = BundleResult()

    if not skip_transfer:
        missing = [
            flag for flag, value in (
                ("--remote-user", remote_user),
                ("--remote-host", remote_host),
                ("--remote-path", remote_path),
            )
            if not value
        ]
        if missing:
            result.error = f"Missing {', '.join(missing)} (or pass --skip-transfer)"
            return result

    try:
        env = prepare(config=config, config_path=config_path, facts=facts, registry=registry)
        settings = env.config.bundle
        if allow_duplicates is None:
            allow_duplicates = settings.allow_duplicates
        result.sources = plugin_sources(settings.plugins, allow_duplicates=allow_duplicates)
        require_tools(env.facts, ["git"] if skip_transfer else ["git", "scp"])
    except DevboxError as e:
        result.error = str(e)
        return result

    if not result.sources:
        result.error = "No plugins configured (bundle.plugins is empty)"
        return result

    work = work_dir or env.facts.home_path(settings.work_dir)
    clones_dir = work / "clones"
    staging_dir = work / "staging"
    archive_path = work / (archive_name or settings.archive_name)

    def _sync() -> dict:
        result.sync = sync_sources(
            result.sources, clones_dir, env.registry, depth=settings.clone_depth
        )
        return result.sync.to_dict()

    def _stage() -> dict:
        result.staged = stage_plugins(
            result.sources,
            clones_dir,
            staging_dir,
            strip_dirs=settings.strip_dirs,
            strip_files=settings.strip_files,
        )
        return {"staged": result.staged}

    def _archive() -> dict:
        result.manifest = create_archive(staging_dir, archive_path, result.sources, now)
        result.archive = archive_path
        return {"archive": str(archive_path), "plugins": result.manifest.plugins}

    def _transfer() -> dict:
        receipt = transfer_archive(
            archive_path,
            user=remote_user or "",
            host=remote_host or "",
            remote_path=remote_path or "",
            registry=env.registry,
        )
        result.target = receipt.metadata.get("target")
        return {"target": result.target}

    stages = [
        Stage("sync", _sync, FAIL_FAST, "clone or update plugin repositories"),
        Stage("stage", _stage, FAIL_FAST, "copy and strip VCS metadata"),
        Stage("archive", _archive, FAIL_FAST, "write tar.gz with manifest"),
        Stage("transfer", _transfer, FAIL_FAST, "scp to the remote host"),
    ]

    result.report = run_pipeline(
        stages,
        env.registry,
        kind="bundle",
        skip=["transfer"] if skip_transfer else [],
    )
    failed = [s for s in result.report.stages if s.status == "failed"]
    if failed:
        result.error = failed[0].error

    record_run(
        env,
        result.report,
        context={"archive": str(archive_path), "plugins": [s.name for s in result.sources]},
    )
    return result
