"""
Unpack use case — set up Neovim on the offline host.

    packages (fail-soft) → plugins → config → path
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from devbox.adapters.registry import AdapterRegistry
from devbox.core.errors import BundleError, DevboxError
from devbox.core.engine.pipeline import FAIL_FAST, FAIL_SOFT, PipelineReport, Stage, run_pipeline
from devbox.core.models.config import DevboxConfig
from devbox.core.models.platform import PlatformFacts
from devbox.core.services.bundle_ops import plugin_sources
from devbox.core.services.editor_ops import (
    OFFLINE_TEMPLATE,
    RenderOptions,
    render_config,
    write_config,
)
from devbox.core.services.install_ops import InstallReport
from devbox.core.services.profile_ops import ensure_on_path
from devbox.core.services.unpack_ops import (
    extract_archive,
    install_remote_catalog,
    write_plugin_listing,
)
from devbox.core.use_cases.common import prepare, record_run

logger = logging.getLogger(__name__)


@dataclass
class UnpackResult:
    """Result of an unpack run."""

    packages: InstallReport | None = None
    plugins: list[str] = field(default_factory=list)
    extracted: bool = False
    pack_dir: Path | None = None
    editor_config: Path | None = None
    listing: Path | None = None
    path_appended: bool = False
    report: PipelineReport | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
        if self.packages:
            result["packages"] = self.packages.to_dict()
        result["plugins"] = self.plugins
        result["extracted"] = self.extracted
        result["pack_dir"] = str(self.pack_dir) if self.pack_dir else None
        result["editor_config"] = str(self.editor_config) if self.editor_config else None
        result["listing"] = str(self.listing) if self.listing else None
        result["path_appended"] = self.path_appended
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def expected_plugins(config: DevboxConfig) -> list[str]:
    """Plugin names the configured bundle would contain."""
    try:
        sources = plugin_sources(
            config.bundle.plugins, allow_duplicates=config.bundle.allow_duplicates
        )
    except BundleError as e:
        logger.warning("Cannot derive plugin names from config: %s", e)
        return []
    return [s.name for s in sources]


def run_unpack(
    *,
    config: DevboxConfig | None = None,
    config_path: Path | None = None,
    facts: PlatformFacts | None = None,
    registry: AdapterRegistry | None = None,
    plugins_tar: Path | None = None,
    runtime_bin: str | None = None,
    mock_mode: bool = False,
) -> UnpackResult:
    """Install remote packages, unpack plugins, write the offline config.

    Args:
        plugins_tar: Archive produced by ``devbox bundle``. Without it the
            plugin step only prints a reminder.
        runtime_bin: Directory holding the numerical runtime's executable;
            appended to PATH in the shell profile when the executable
            isn't already reachable.
        mock_mode: Replace every adapter with a mock.
    """
    result = UnpackResult()

    try:
        env = prepare(
            config=config,
            config_path=config_path,
            facts=facts,
            registry=registry,
            mock_mode=mock_mode,
        )
    except DevboxError as e:
        result.error = str(e)
        return result

    cfg = env.config
    remote = cfg.remote
    result.pack_dir = env.facts.home_path(remote.pack_dir)
    config_dir = env.facts.home_path(cfg.editor.config_dir)

    def _packages() -> dict:
        result.packages = install_remote_catalog(env.facts, env.registry, remote)
        return result.packages.to_dict()

    def _plugins() -> dict:
        result.pack_dir.mkdir(parents=True, exist_ok=True)
        if plugins_tar is None:
            result.plugins = expected_plugins(cfg)
            logger.warning(
                "No --plugins-tar given. Copy %s here later and re-run with --plugins-tar.",
                cfg.bundle.archive_name,
            )
            return {"extracted": False}
        result.plugins = extract_archive(plugins_tar, result.pack_dir)
        result.extracted = True
        return {"extracted": True, "plugins": result.plugins}

    def _config() -> dict:
        text = render_config(
            env.facts,
            RenderOptions(template=OFFLINE_TEMPLATE, runtime_bin=runtime_bin),
        )
        result.editor_config = config_dir / cfg.editor.config_file
        changed = write_config(result.editor_config, text)
        result.listing = config_dir / remote.manifest_file
        write_plugin_listing(result.listing, result.plugins)
        return {"config": str(result.editor_config), "changed": changed}

    def _path() -> dict:
        if not runtime_bin:
            logger.info(
                "Tip: re-run with --runtime-bin /path/to/bin to put %s on PATH",
                remote.runtime_executable,
            )
            return {"appended": False}
        result.path_appended = ensure_on_path(
            env.facts,
            env.facts.home_path(remote.profile),
            runtime_bin,
            remote.runtime_executable,
            dedupe=cfg.editor.dedupe_path_line,
        )
        return {"appended": result.path_appended}

    stages = [
        Stage("packages", _packages, FAIL_SOFT, "remote package catalog"),
        Stage("plugins", _plugins, FAIL_FAST, "unpack plugin archive"),
        Stage("config", _config, FAIL_FAST, "offline Neovim configuration"),
        Stage("path", _path, FAIL_FAST, "runtime PATH entry"),
    ]

    result.report = run_pipeline(stages, env.registry, kind="unpack")
    failed = [s for s in result.report.stages if s.status == "failed" and s.policy == FAIL_FAST]
    if failed:
        result.error = failed[0].error

    record_run(
        env,
        result.report,
        installed=result.packages.installed if result.packages else [],
        context={"plugins": result.plugins, "archive": str(plugins_tar) if plugins_tar else None},
    )
    return result
