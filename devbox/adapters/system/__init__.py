"""OS service adapters — Spotlight search, at scheduler."""

from devbox.adapters.system.scheduler import AtSchedulerAdapter
from devbox.adapters.system.spotlight import SpotlightAdapter

__all__ = ["AtSchedulerAdapter", "SpotlightAdapter"]
