"""Version control adapters."""

from devbox.adapters.vcs.git import GitAdapter

__all__ = ["GitAdapter"]
