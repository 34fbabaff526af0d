"""
Platform detection — the one place that reads the ambient host.

Everything else receives the resulting PlatformFacts as an argument.
"""

from __future__ import annotations

import logging
import os
import platform
from pathlib import Path

from devbox.core.models.platform import PlatformFacts

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")

_OS_FAMILIES = {"Darwin": "darwin", "Linux": "linux", "Windows": "windows"}


def parse_os_release(text: str) -> tuple[str, ...]:
    """Distribution ids from an os-release document: ``ID`` then ``ID_LIKE``."""
    ids: list[str] = []
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if not sep or key.strip() not in ("ID", "ID_LIKE"):
            continue
        for item in value.strip().strip("\"'").split():
            if item and item not in ids:
                ids.append(item)
    return tuple(ids)


def _distro_like(os_release: Path) -> tuple[str, ...]:
    try:
        return parse_os_release(os_release.read_text(encoding="utf-8"))
    except OSError:
        return ()


def _normalize_arch(machine: str) -> str:
    machine = machine.lower()
    if machine in ("aarch64", "arm64"):
        return "arm64"
    if machine in ("amd64", "x86_64"):
        return "x86_64"
    return machine or "unknown"


def detect_platform(os_release: Path = OS_RELEASE) -> PlatformFacts:
    """Build PlatformFacts from the running host."""
    system = platform.system()
    os_family = _OS_FAMILIES.get(system)
    if os_family is None:
        logger.warning("Unrecognized OS %r — treating as linux", system)
        os_family = "linux"

    path = tuple(p for p in os.environ.get("PATH", "").split(os.pathsep) if p)
    is_root = hasattr(os, "geteuid") and os.geteuid() == 0

    facts = PlatformFacts(
        os_family=os_family,
        arch=_normalize_arch(platform.machine()),
        home=Path.home(),
        path=path,
        is_root=is_root,
        distro_like=_distro_like(os_release) if os_family == "linux" else (),
    )
    logger.debug(
        "Detected platform: %s/%s home=%s root=%s distro=%s",
        facts.os_family, facts.arch, facts.home, facts.is_root, ",".join(facts.distro_like),
    )
    return facts
