"""Package manager adapters — brew, apt, dnf/yum, pip."""

from devbox.adapters.packages.base import PackageManagerAdapter
from devbox.adapters.packages.homebrew import HomebrewAdapter
from devbox.adapters.packages.pip import PipAdapter
from devbox.adapters.packages.system import AptAdapter, DnfAdapter

__all__ = [
    "AptAdapter",
    "DnfAdapter",
    "HomebrewAdapter",
    "PackageManagerAdapter",
    "PipAdapter",
]
