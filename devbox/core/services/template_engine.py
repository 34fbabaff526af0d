"""
Template engine for the editor configuration documents.

Processes the packaged ``.vim`` templates with two mechanisms:
  1. Conditional blocks:  " __IF_FEATURE_xxx__ / " __IF_NOT_FEATURE_xxx__ / " __ENDIF__
  2. Placeholder substitution:  __PLACEHOLDER_NAME__

The markers are Vim comments, so a template stays a valid init.vim
that editors can syntax-highlight. Rendering is pure: the same
template, features and placeholders always give the same bytes.
"""

from __future__ import annotations

import hashlib
import re
from importlib import resources
from typing import Any

TEMPLATE_PACKAGE = "devbox.core.data"
TEMPLATE_VERSION = 1


# ── Feature Registry ───────────────────────────────────────────────

FEATURES: dict[str, dict[str, Any]] = {
    "runtime_bin": {
        "description": "Prepend the numerical runtime's bin directory to $PATH inside Neovim",
        "default": False,
    },
}


def load_template(name: str) -> str:
    """Read a packaged template (``workstation.vim``, ``offline.vim``)."""
    return (
        resources.files(TEMPLATE_PACKAGE)
        .joinpath("templates", name)
        .read_text(encoding="utf-8")
    )


# Innermost block first: the body may not open another block
_BLOCK = re.compile(
    r'"\s*__IF_(NOT_)?FEATURE_(\w+)__[ \t]*\n'
    r'((?:(?!"\s*__IF_).)*?)'
    r'"\s*__ENDIF__[ \t]*\n',
    re.DOTALL,
)


def process_template(
    content: str,
    features: dict[str, bool],
    placeholders: dict[str, str],
) -> str:
    """Resolve feature blocks, substitute placeholders, squeeze blank runs.

    A block is a pair of Vim comment lines around its body:

        " __IF_FEATURE_runtime_bin__
        let $PATH = '__RUNTIME_BIN__:' . $PATH
        " __ENDIF__

    ``__IF_NOT_FEATURE_x__`` keeps its body when ``x`` is off. Blocks
    nest; the loop peels one level per pass.
    """

    def _resolve(m: re.Match) -> str:
        enabled = features.get(m.group(2), False)
        negated = m.group(1) is not None
        return m.group(3) if enabled != negated else ""

    resolved = 1
    while resolved:
        content, resolved = _BLOCK.subn(_resolve, content)

    for key, value in placeholders.items():
        content = content.replace(key, value)

    return re.sub(r"\n{3,}", "\n\n", content)


def resolve_features(user_features: dict[str, bool] | None = None) -> dict[str, bool]:
    """Known features only, each defaulted from ``FEATURES``."""
    chosen = user_features or {}
    return {key: chosen.get(key, feature["default"]) for key, feature in FEATURES.items()}


def compute_content_hash(*contents: str) -> str:
    """Short digest of rendered content, for logs and ``config render``."""
    return hashlib.sha256("".join(contents).encode("utf-8")).hexdigest()[:12]
