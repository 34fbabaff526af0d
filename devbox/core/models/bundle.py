"""
Bundle models — plugin sources and the archive manifest.

The manifest is the contract between ``devbox bundle`` and
``devbox unpack``: it travels inside the archive as
``.bundle-manifest.json`` and lists the top-level plugin directories.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

MANIFEST_NAME = ".bundle-manifest.json"
MANIFEST_FORMAT_VERSION = 1

# Suffix stripped from the final URL segment to form the directory name
VCS_SUFFIX = ".git"


def derive_plugin_name(url: str) -> str:
    """Directory name for a repository URL: last path segment minus ``.git``.

    ``https://github.com/tpope/vim-fugitive.git`` → ``vim-fugitive``
    ``git@github.com:ctrlpvim/ctrlp.vim.git``   → ``ctrlp.vim``
    """
    segment = url.rstrip("/").replace(":", "/").rsplit("/", 1)[-1]
    if segment.endswith(VCS_SUFFIX):
        segment = segment[: -len(VCS_SUFFIX)]
    if not segment or segment in (".", ".."):
        raise ValueError(f"Cannot derive a plugin name from URL: {url!r}")
    return segment


class PluginSource(BaseModel):
    """A repository URL and the local directory name derived from it."""

    model_config = ConfigDict(frozen=True)

    url: str
    name: str

    @classmethod
    def from_url(cls, url: str) -> PluginSource:
        return cls(url=url, name=derive_plugin_name(url))


class BundleManifest(BaseModel):
    """Versioned listing of the plugin directories inside an archive."""

    format_version: int = MANIFEST_FORMAT_VERSION
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    plugins: list[str] = Field(default_factory=list)
    sources: dict[str, str] = Field(default_factory=dict)   # name → url
