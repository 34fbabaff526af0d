"""Editor adapters."""

from devbox.adapters.editor.neovim import NeovimAdapter

__all__ = ["NeovimAdapter"]
