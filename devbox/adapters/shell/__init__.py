"""Shell adapter."""

from devbox.adapters.shell.command import ShellCommandAdapter

__all__ = ["ShellCommandAdapter"]
