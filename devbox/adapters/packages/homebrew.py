"""
Homebrew adapter — formulae and casks on macOS.

``query`` mirrors ``brew list --cask X || brew list X``: a tool counts
as installed whichever way Homebrew knows it.
"""

from __future__ import annotations

from typing import Any

from devbox.adapters.packages.base import PackageManagerAdapter

# Where the installer puts brew, by architecture
BREW_PREFIXES = {
    "arm64": "/opt/homebrew",
    "x86_64": "/usr/local",
}

INSTALL_SCRIPT_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"


def brew_prefix(arch: str) -> str:
    return BREW_PREFIXES.get(arch, BREW_PREFIXES["x86_64"])


class HomebrewAdapter(PackageManagerAdapter):
    """brew list / brew install [--cask]."""

    executable = "brew"
    env = {"HOMEBREW_NO_AUTO_UPDATE": "1"}

    def query_command(self, exe: str, unit: str, params: dict[str, Any]) -> list[list[str]]:
        return [
            [exe, "list", "--cask", unit],
            [exe, "list", unit],
        ]

    def install_command(self, exe: str, unit: str, params: dict[str, Any]) -> list[str]:
        if params.get("kind") == "cask":
            return [exe, "install", "--cask", unit]
        return [exe, "install", unit]

    def refresh_command(self, exe: str) -> list[str] | None:
        return [exe, "update"]
