"""
OS package manager adapters — apt (Debian family) and dnf/yum (RHEL family).

Both run install and refresh through sudo when the process isn't root.
"""

from __future__ import annotations

from typing import Any

from devbox.adapters.packages.base import PackageManagerAdapter
from devbox.core.models.action import Receipt


class AptAdapter(PackageManagerAdapter):
    """dpkg-query for presence, apt-get for installs."""

    executable = "apt-get"
    uses_sudo = True
    env = {"DEBIAN_FRONTEND": "noninteractive"}

    @property
    def name(self) -> str:
        return "apt"

    def query_command(self, exe: str, unit: str, params: dict[str, Any]) -> list[list[str]]:
        return [["dpkg-query", "-W", "-f=${Status}", unit]]

    def check_query_output(self, receipt: Receipt) -> bool:
        # dpkg-query exits 0 for removed-but-known packages too
        return "install ok installed" in receipt.output

    def install_command(self, exe: str, unit: str, params: dict[str, Any]) -> list[str]:
        return [exe, "install", "-y", unit]

    def refresh_command(self, exe: str) -> list[str] | None:
        return [exe, "update"]


class DnfAdapter(PackageManagerAdapter):
    """rpm -q for presence, dnf (or yum) for installs and group installs.

    Action params:
        kind (str): ``group`` installs a package group
                    (``groupinstall "Development Tools"``).
    """

    uses_sudo = True

    def __init__(self, executable: str = "dnf"):
        if executable not in ("dnf", "yum"):
            raise ValueError(f"Unsupported RPM front-end: {executable}")
        self.executable = executable

    def query_command(self, exe: str, unit: str, params: dict[str, Any]) -> list[list[str]]:
        if params.get("kind") == "group":
            return [[exe, "group", "list", "--installed", unit]]
        return [["rpm", "-q", unit]]

    def check_query_output(self, receipt: Receipt) -> bool:
        # group list exits 0 even when nothing matches
        return bool(receipt.output.strip())

    def install_command(self, exe: str, unit: str, params: dict[str, Any]) -> list[str]:
        if params.get("kind") == "group":
            return [exe, "-y", "groupinstall", unit]
        return [exe, "-y", "install", unit]

    def refresh_command(self, exe: str) -> list[str] | None:
        return [exe, "-y", "makecache"]
