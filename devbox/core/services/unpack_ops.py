"""
Remote unpack — install the offline host's packages and vendored plugins.

Package installs are fail-soft: a missing repository or package must
not stop the editor setup. Archive problems are not: an archive whose
contents disagree with its manifest raises UnpackError before anything
is extracted.
"""

from __future__ import annotations

import json
import logging
import shutil
import tarfile
from pathlib import Path, PurePosixPath

from devbox.adapters.registry import AdapterRegistry
from devbox.core.errors import UnpackError
from devbox.core.models.bundle import MANIFEST_FORMAT_VERSION, MANIFEST_NAME, BundleManifest
from devbox.core.models.config import RemoteSettings
from devbox.core.models.platform import PlatformFacts
from devbox.core.persistence.state_file import atomic_write_text
from devbox.core.services.install_ops import InstallReport, install_catalog, select_rpm_manager

logger = logging.getLogger(__name__)

STAGE_PACKAGES = "packages"


def install_remote_catalog(
    facts: PlatformFacts,
    registry: AdapterRegistry,
    settings: RemoteSettings,
) -> InstallReport:
    """Install the remote catalog through dnf (or yum), fail-soft."""
    manager = select_rpm_manager(facts)
    return install_catalog(
        settings.catalog(),
        facts,
        registry,
        manager=manager,
        fail_fast=False,
        stage=STAGE_PACKAGES,
    )


# ═══════════════════════════════════════════════════════════════════
#  Archive inspection
# ═══════════════════════════════════════════════════════════════════


def _open(archive: Path) -> tarfile.TarFile:
    if not archive.is_file():
        raise UnpackError(f"Archive not found: {archive}")
    try:
        return tarfile.open(archive, "r:gz")
    except (tarfile.TarError, OSError) as e:
        raise UnpackError(f"Not a readable tar.gz archive: {archive} ({e})") from e


def _member_parts(name: str) -> tuple[str, ...]:
    return tuple(p for p in PurePosixPath(name).parts if p not in ("", "."))


def _check_member(member: tarfile.TarInfo) -> None:
    """Refuse members that would land outside the target directory."""
    if member.name.startswith("/") or ".." in _member_parts(member.name):
        raise UnpackError(f"Refusing unsafe archive member: {member.name}")


def top_level_names(tar: tarfile.TarFile) -> set[str]:
    """First path component of every member, manifest excluded."""
    names: set[str] = set()
    for member in tar.getmembers():
        parts = _member_parts(member.name)
        if parts and parts[0] != MANIFEST_NAME:
            names.add(parts[0])
    return names


def read_manifest(archive: Path) -> BundleManifest | None:
    """The embedded manifest, or None for a legacy archive without one.

    Raises:
        UnpackError: If the archive or the manifest is unreadable.
    """
    with _open(archive) as tar:
        try:
            member = tar.getmember(MANIFEST_NAME)
        except KeyError:
            return None
        fobj = tar.extractfile(member)
        if fobj is None:
            raise UnpackError(f"{MANIFEST_NAME} is not a regular file")
        try:
            return BundleManifest.model_validate(json.loads(fobj.read().decode("utf-8")))
        except Exception as e:
            raise UnpackError(f"Invalid {MANIFEST_NAME}: {e}") from e


def validate_archive(archive: Path) -> list[str]:
    """Check the archive against its manifest.

    Returns:
        Plugin names, in manifest order (sorted for legacy archives).

    Raises:
        UnpackError: On an unsupported format version, unsafe members,
            or a mismatch between the manifest and the contents.
    """
    manifest = read_manifest(archive)
    with _open(archive) as tar:
        for member in tar.getmembers():
            _check_member(member)
        names = top_level_names(tar)

    if manifest is None:
        logger.warning("%s has no %s — trusting its contents", archive.name, MANIFEST_NAME)
        return sorted(names)

    if manifest.format_version > MANIFEST_FORMAT_VERSION:
        raise UnpackError(
            f"Unsupported bundle format {manifest.format_version} "
            f"(this devbox reads up to {MANIFEST_FORMAT_VERSION})"
        )

    expected = set(manifest.plugins)
    if expected != names:
        problems = []
        if expected - names:
            problems.append(f"missing: {', '.join(sorted(expected - names))}")
        if names - expected:
            problems.append(f"unexpected: {', '.join(sorted(names - expected))}")
        raise UnpackError(f"{archive.name} does not match its manifest ({'; '.join(problems)})")

    return list(manifest.plugins)


def extract_archive(archive: Path, pack_dir: Path) -> list[str]:
    """Validate, then extract the plugins into ``pack_dir``.

    Each plugin directory already in ``pack_dir`` is replaced, so a
    re-run with a newer archive leaves no stale files behind.

    Returns:
        The extracted plugin names.
    """
    plugins = validate_archive(archive)
    pack_dir.mkdir(parents=True, exist_ok=True)

    for name in plugins:
        existing = pack_dir / name
        if existing.is_dir() and not existing.is_symlink():
            shutil.rmtree(existing)
        elif existing.exists() or existing.is_symlink():
            existing.unlink()

    with _open(archive) as tar:
        members = [m for m in tar.getmembers() if _member_parts(m.name)[:1] != (MANIFEST_NAME,)]
        try:
            tar.extractall(pack_dir, members=members, filter="data")
        except tarfile.TarError as e:
            raise UnpackError(f"Could not extract {archive.name}: {e}") from e

    logger.info("Unpacked %d plugin(s) into %s", len(plugins), pack_dir)
    return plugins


# ═══════════════════════════════════════════════════════════════════
#  Listing
# ═══════════════════════════════════════════════════════════════════


def write_plugin_listing(path: Path, names: list[str]) -> None:
    """One expected plugin name per line."""
    atomic_write_text(path, "".join(f"{n}\n" for n in names), prefix=".plugins_")
    logger.info("Wrote plugin listing %s (%d entries)", path, len(names))
