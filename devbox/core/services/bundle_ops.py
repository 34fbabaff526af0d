"""
Plugin bundling — clone, strip, archive and ship editor plugins.

The offline host has no network, so its plugins travel as one tar.gz:

    sync_sources → stage_plugins → create_archive → transfer_archive

Clones live in ``<work_dir>/clones`` and are refreshed in place on the
next run; ``<work_dir>/staging`` holds the stripped copies that get
archived. Clones are never stripped.
"""

from __future__ import annotations

import io
import json
import logging
import os
import shutil
import tarfile
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from devbox.adapters.registry import AdapterRegistry
from devbox.core.errors import BundleError, StageFailed, ToolMissing
from devbox.core.models.action import Action, Receipt
from devbox.core.models.bundle import MANIFEST_NAME, BundleManifest, PluginSource
from devbox.core.models.platform import PlatformFacts

logger = logging.getLogger(__name__)

DEFAULT_STRIP_DIRS = (".git", ".github", ".gitlab", ".circleci")
DEFAULT_STRIP_FILES = (".gitmodules", ".travis.yml", ".gitlab-ci.yml")


@dataclass
class SyncReport:
    cloned: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"cloned": self.cloned, "updated": self.updated}


# ═══════════════════════════════════════════════════════════════════
#  Sources
# ═══════════════════════════════════════════════════════════════════


def plugin_sources(urls: list[str], *, allow_duplicates: bool = False) -> list[PluginSource]:
    """Derive directory names for each URL, refusing silent collisions.

    Two URLs that derive the same name would overwrite each other in the
    staging area. That raises BundleError unless ``allow_duplicates`` is
    set, in which case the later URL wins.
    """
    by_name: dict[str, PluginSource] = {}
    for url in urls:
        try:
            source = PluginSource.from_url(url)
        except ValueError as e:
            raise BundleError(str(e)) from e

        previous = by_name.get(source.name)
        if previous is not None and previous.url != url:
            if not allow_duplicates:
                raise BundleError(
                    f"Plugins {previous.url} and {url} both unpack to '{source.name}'"
                )
            logger.warning(
                "Plugin name '%s' used twice — %s replaces %s",
                source.name, url, previous.url,
            )
        by_name[source.name] = source
    return list(by_name.values())


def require_tools(facts: PlatformFacts, names: list[str]) -> None:
    """Raise ToolMissing unless every executable resolves on PATH."""
    missing = [n for n in names if not facts.has_executable(n)]
    if missing:
        raise ToolMissing(missing)


# ═══════════════════════════════════════════════════════════════════
#  Clone & stage
# ═══════════════════════════════════════════════════════════════════


def sync_sources(
    sources: list[PluginSource],
    clones_dir: Path,
    registry: AdapterRegistry,
    *,
    depth: int = 1,
    stage: str = "sync",
) -> SyncReport:
    """Clone missing plugins, fast-forward existing clones.

    A clone whose origin is not the configured URL is removed and cloned
    again from that URL.

    Raises:
        StageFailed: On the first failed git call.
    """
    clones_dir.mkdir(parents=True, exist_ok=True)
    report = SyncReport()

    for source in sources:
        dest = clones_dir / source.name
        if (dest / ".git").exists() and not _origin_matches(dest, source, registry, stage):
            logger.warning("Re-cloning %s: origin is not %s", source.name, source.url)
            shutil.rmtree(dest)

        if (dest / ".git").exists():
            action = Action.build("git", "update", source.name, stage=stage, dest=str(dest))
            bucket = report.updated
        else:
            if dest.exists():
                logger.warning("Replacing non-git directory %s", dest)
                shutil.rmtree(dest)
            action = Action.build(
                "git", "clone", source.name, stage=stage,
                url=source.url, dest=str(dest), depth=depth,
            )
            bucket = report.cloned

        receipt = registry.execute(action)
        if receipt.failed:
            raise StageFailed(stage, f"git {action.operation} {source.url} failed: {receipt.error}")
        bucket.append(source.name)
        logger.info("%s %s", "Updated" if bucket is report.updated else "Cloned", source.name)

    return report


def _origin_matches(dest: Path, source: PluginSource, registry: AdapterRegistry, stage: str) -> bool:
    """False when the clone's origin is unreadable or points elsewhere. Mocked answers match."""
    receipt = registry.execute(
        Action.build("git", "origin", source.name, stage=stage, read_only=True, dest=str(dest))
    )
    if receipt.metadata.get("mock"):
        return True
    return receipt.ok and receipt.output.strip() == source.url


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def strip_metadata(
    root: Path,
    strip_dirs: tuple[str, ...] | list[str] = DEFAULT_STRIP_DIRS,
    strip_files: tuple[str, ...] | list[str] = DEFAULT_STRIP_FILES,
) -> list[Path]:
    """Remove VCS and CI metadata anywhere under ``root``.

    ``.git`` may be a file in submodule checkouts, so names are matched
    against both directories and files.
    """
    names = set(strip_dirs) | set(strip_files)
    removed: list[Path] = []
    for current, dirnames, filenames in os.walk(root):
        for name in [d for d in dirnames if d in names]:
            path = Path(current) / name
            _remove(path)
            removed.append(path)
            dirnames.remove(name)
        for name in filenames:
            if name in names:
                path = Path(current) / name
                _remove(path)
                removed.append(path)
    return removed


def stage_plugins(
    sources: list[PluginSource],
    clones_dir: Path,
    staging_dir: Path,
    *,
    strip_dirs: tuple[str, ...] | list[str] = DEFAULT_STRIP_DIRS,
    strip_files: tuple[str, ...] | list[str] = DEFAULT_STRIP_FILES,
) -> list[str]:
    """Copy each clone into the staging area and strip the copy.

    Returns:
        Staged plugin names, in source order.

    Raises:
        BundleError: If a clone is missing.
    """
    staging_dir.mkdir(parents=True, exist_ok=True)
    staged: list[str] = []

    for source in sources:
        clone = clones_dir / source.name
        if not clone.is_dir():
            raise BundleError(f"No clone for {source.name} at {clone}")

        target = staging_dir / source.name
        if target.exists() or target.is_symlink():
            _remove(target)
        shutil.copytree(clone, target, symlinks=True)

        removed = strip_metadata(target, strip_dirs, strip_files)
        logger.debug("Staged %s (%d metadata entries stripped)", source.name, len(removed))
        staged.append(source.name)

    return staged


# ═══════════════════════════════════════════════════════════════════
#  Archive & transfer
# ═══════════════════════════════════════════════════════════════════


def create_archive(
    staging_dir: Path,
    archive_path: Path,
    sources: list[PluginSource],
    now: datetime | None = None,
) -> BundleManifest:
    """Write a tar.gz of the staged plugins plus the embedded manifest.

    Any previous archive at ``archive_path`` is replaced. Top-level
    entries are exactly the plugin directories and ``.bundle-manifest.json``.
    """
    now = now or datetime.now(UTC)
    manifest = BundleManifest(
        created_at=now.isoformat(),
        plugins=[s.name for s in sources],
        sources={s.name: s.url for s in sources},
    )

    archive_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = archive_path.with_name(archive_path.name + ".tmp")

    try:
        with tarfile.open(tmp_path, "w:gz") as tar:
            manifest_bytes = json.dumps(manifest.model_dump(mode="json"), indent=2).encode("utf-8")
            info = tarfile.TarInfo(name=MANIFEST_NAME)
            info.size = len(manifest_bytes)
            info.mtime = int(now.timestamp())
            tar.addfile(info, io.BytesIO(manifest_bytes))

            for source in sources:
                path = staging_dir / source.name
                if not path.is_dir():
                    raise BundleError(f"Staged plugin missing: {path}")
                tar.add(str(path), arcname=source.name)
        tmp_path.replace(archive_path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise

    logger.info(
        "Archive created: %s (%d plugins, %d bytes)",
        archive_path, len(manifest.plugins), archive_path.stat().st_size,
    )
    return manifest


def transfer_archive(
    archive: Path,
    *,
    user: str,
    host: str,
    remote_path: str,
    registry: AdapterRegistry,
    stage: str = "transfer",
) -> Receipt:
    """Copy the archive to ``user@host:remote_path``.

    Raises:
        StageFailed: If scp fails.
    """
    receipt = registry.execute(
        Action.build(
            "scp", "copy", archive.name, stage=stage,
            source=str(archive), user=user, host=host, path=remote_path,
        )
    )
    if receipt.failed:
        raise StageFailed(stage, f"scp to {host} failed: {receipt.error}")
    logger.info("Copied %s to %s", archive.name, receipt.metadata.get("target", host))
    return receipt
