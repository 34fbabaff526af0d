"""
Domain errors.

Adapters never raise; stages and services raise these when a
fail-fast step fails or input is unusable. The CLI turns any
``DevboxError`` into a red message and exit code 1.
"""

from __future__ import annotations


class DevboxError(Exception):
    """Base class for every error devbox reports to the operator."""


class ConfigError(DevboxError):
    """Raised when devbox.yml is invalid or unreadable."""


class StageFailed(DevboxError):
    """A fail-fast stage hit a failed external call."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"[{stage}] {message}")
        self.stage = stage
        self.message = message


class ToolMissing(DevboxError):
    """A required executable (git, scp, ...) is not on PATH."""

    def __init__(self, names: list[str]):
        super().__init__(f"Required tool(s) not found on PATH: {', '.join(names)}")
        self.names = names


class BundleError(DevboxError):
    """The plugin set cannot be bundled (e.g. duplicate directory names)."""


class UnpackError(DevboxError):
    """A plugin archive is malformed or does not match its manifest."""
