"""
Editor configuration — render, write and bootstrap the Neovim setup.

``render_config`` is a pure function of the host facts and the render
options; ``write_config`` is the only place the document touches disk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from devbox.adapters.registry import AdapterRegistry
from devbox.core.errors import StageFailed
from devbox.core.models.action import Action, Receipt
from devbox.core.models.platform import PlatformFacts
from devbox.core.persistence.state_file import atomic_write_text
from devbox.core.services.template_engine import (
    compute_content_hash,
    load_template,
    process_template,
    resolve_features,
)

logger = logging.getLogger(__name__)

WORKSTATION_TEMPLATE = "workstation.vim"
OFFLINE_TEMPLATE = "offline.vim"


@dataclass(frozen=True)
class RenderOptions:
    """Inputs to a config render besides the host facts."""

    template: str = WORKSTATION_TEMPLATE
    plugged_dir: str = "~/.config/nvim/plugged"
    runtime_bin: str | None = None


def clipboard_register(facts: PlatformFacts) -> str:
    # macOS has a single system clipboard; X11/Wayland expose '+'
    return "unnamed" if facts.is_macos else "unnamedplus"


def _vim_quoted(value: str) -> str:
    """Escape for a single-quoted Vim string literal."""
    return value.replace("'", "''")


def render_config(facts: PlatformFacts, options: RenderOptions | None = None) -> str:
    """Render a configuration document. Same inputs, same bytes."""
    options = options or RenderOptions()
    features = resolve_features({"runtime_bin": bool(options.runtime_bin)})
    placeholders = {
        "__CLIPBOARD__": clipboard_register(facts),
        "__PLUGGED_DIR__": _vim_quoted(options.plugged_dir),
        "__RUNTIME_BIN__": _vim_quoted(options.runtime_bin or ""),
    }
    return process_template(load_template(options.template), features, placeholders)


def write_config(path: Path, text: str) -> bool:
    """Overwrite ``path`` with ``text``. Returns whether the content changed."""
    previous = path.read_text(encoding="utf-8") if path.is_file() else None
    atomic_write_text(path, text, prefix=".nvim_")
    changed = previous != text
    logger.info(
        "%s %s (%s)",
        "Wrote" if changed else "Rewrote unchanged",
        path,
        compute_content_hash(text),
    )
    return changed


def ensure_plug_bootstrap(
    facts: PlatformFacts,
    registry: AdapterRegistry,
    *,
    plug_path: str,
    plug_url: str,
    stage: str = "editor",
) -> bool:
    """Download vim-plug's ``plug.vim`` if it is missing.

    Returns:
        True if a download was performed.

    Raises:
        StageFailed: If the download fails.
    """
    target = facts.home_path(plug_path)
    if target.is_file():
        logger.info("vim-plug already present at %s", target)
        return False

    receipt = registry.execute(
        Action.build("curl", "fetch", "plug.vim", stage=stage, url=plug_url, dest=str(target))
    )
    if receipt.failed:
        raise StageFailed(stage, f"Could not download vim-plug: {receipt.error}")
    if receipt.ok:
        logger.info("Installed vim-plug to %s", target)
    return receipt.ok


def install_plugins(registry: AdapterRegistry, *, stage: str = "editor") -> Receipt:
    """Run the editor's batch plugin install. Failure is logged, never raised."""
    receipt = registry.execute(Action.build("nvim", "plugin-install", stage=stage))
    if receipt.failed:
        logger.warning("Plugin install reported errors (continuing): %s", receipt.error)
    elif receipt.ok:
        logger.info("Neovim plugins installed")
    return receipt
