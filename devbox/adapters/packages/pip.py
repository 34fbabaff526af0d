"""
pip adapter — system-wide Python libraries.

``install`` with ``upgrade`` set runs ``pip install --upgrade``; the
runtime stage uses it to upgrade pip itself before the library list.
"""

from __future__ import annotations

from typing import Any

from devbox.adapters.packages.base import PackageManagerAdapter


class PipAdapter(PackageManagerAdapter):
    """pip show / pip install."""

    def __init__(self, executable: str = "pip3"):
        self.executable = executable

    @property
    def name(self) -> str:
        return "pip"

    def query_command(self, exe: str, unit: str, params: dict[str, Any]) -> list[list[str]]:
        return [[exe, "show", "--quiet", unit]]

    def install_command(self, exe: str, unit: str, params: dict[str, Any]) -> list[str]:
        cmd = [exe, "install"]
        if params.get("upgrade"):
            cmd.append("--upgrade")
        cmd.append(unit)
        return cmd
