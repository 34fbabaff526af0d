"""
PlatformFacts — the injected view of the host machine.

Every stage receives one of these instead of calling ``platform``,
``os.environ`` or ``shutil.which`` itself. Tests build them by hand to
simulate macOS on Linux (or an empty PATH) deterministically.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

OsFamily = Literal["darwin", "linux", "windows"]


class PlatformFacts(BaseModel):
    """OS family, architecture, home directory and PATH of the target host."""

    model_config = ConfigDict(frozen=True)

    os_family: OsFamily
    arch: str = "x86_64"
    home: Path
    path: tuple[str, ...] = ()
    is_root: bool = False
    distro_like: tuple[str, ...] = Field(default_factory=tuple)

    @property
    def is_macos(self) -> bool:
        return self.os_family == "darwin"

    @property
    def is_linux(self) -> bool:
        return self.os_family == "linux"

    @property
    def is_apple_silicon(self) -> bool:
        return self.is_macos and self.arch == "arm64"

    def which(self, name: str) -> str | None:
        """Resolve an executable against this host's PATH only."""
        if not self.path:
            return None
        return shutil.which(name, path=os.pathsep.join(self.path))

    def has_executable(self, name: str) -> bool:
        return self.which(name) is not None

    def home_path(self, relative: str) -> Path:
        """Join a home-relative path (``.config/nvim``) onto ``home``."""
        return self.home / relative

    def with_path(self, *entries: str) -> PlatformFacts:
        """Copy with extra PATH entries prepended (after a bootstrap install)."""
        return self.model_copy(update={"path": tuple(entries) + self.path})
