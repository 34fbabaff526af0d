"""
Shell profile edits — append-only lines in ``~/.bash_profile`` / ``~/.bashrc``.

Lines are only ever appended, never rewritten. ``ensure_on_path``
appends its export line each time the executable is still missing from
PATH; pass ``dedupe=True`` (config ``editor.dedupe_path_line``) to skip
a line that is already in the file.
"""

from __future__ import annotations

import logging
from pathlib import Path

from devbox.core.models.platform import PlatformFacts

logger = logging.getLogger(__name__)


def path_export_line(bin_dir: str) -> str:
    return f'export PATH="{bin_dir}:$PATH"'


def shellenv_line(brew_executable: str) -> str:
    """Login-profile hook that puts Homebrew on PATH."""
    return f'eval "$({brew_executable} shellenv)"'


def has_line(profile: Path, line: str) -> bool:
    if not profile.is_file():
        return False
    return line in profile.read_text(encoding="utf-8").splitlines()


def append_line(profile: Path, line: str) -> None:
    """Append ``line`` to ``profile``, creating the file if needed."""
    profile.parent.mkdir(parents=True, exist_ok=True)
    prefix = ""
    if profile.is_file():
        existing = profile.read_text(encoding="utf-8")
        if existing and not existing.endswith("\n"):
            prefix = "\n"
    with profile.open("a", encoding="utf-8") as f:
        f.write(f"{prefix}{line}\n")
    logger.info("Appended to %s: %s", profile, line)


def ensure_line(profile: Path, line: str) -> bool:
    """Append ``line`` unless the file already has it. Returns whether it was added."""
    if has_line(profile, line):
        logger.debug("%s already contains: %s", profile, line)
        return False
    append_line(profile, line)
    return True


def ensure_on_path(
    facts: PlatformFacts,
    profile: Path,
    bin_dir: str,
    executable: str,
    *,
    dedupe: bool = False,
) -> bool:
    """Append a PATH export for ``bin_dir`` if ``executable`` is not on PATH.

    Returns:
        True if a line was appended.
    """
    if facts.has_executable(executable):
        logger.info("%s already on PATH — leaving %s alone", executable, profile)
        return False

    line = path_export_line(bin_dir)
    if dedupe:
        return ensure_line(profile, line)
    append_line(profile, line)
    return True
