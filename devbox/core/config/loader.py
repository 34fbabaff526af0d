"""
Configuration loader — reads devbox.yml into DevboxConfig.

The packaged ``defaults.yml`` is always loaded first; the user's file
(if any) is deep-merged over it and the result validated against the
Pydantic schema. A machine with no devbox.yml provisions with the
defaults, exactly like the original scripts did.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from devbox.core.errors import ConfigError
from devbox.core.models.config import DevboxConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "devbox.yml"
CONFIG_ENV_VAR = "DEVBOX_CONFIG"

DEFAULTS_PATH = Path(__file__).resolve().parent.parent / "data" / "defaults.yml"

__all__ = [
    "CONFIG_FILE",
    "ConfigError",
    "find_config_file",
    "load_config",
    "merge_config",
]


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for devbox.yml starting from the given directory, walking up.

    ``DEVBOX_CONFIG`` short-circuits the search when set.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to devbox.yml, or None if not found.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` onto ``base``.

    Mappings merge key by key; any other value (lists included)
    replaces the base value wholesale.
    """
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_config(path: Path | None = None, *, search: bool = True) -> DevboxConfig:
    """Load and validate devbox configuration.

    Args:
        path: Explicit path to devbox.yml. If None and ``search`` is set,
            searches upward from cwd; a missing file means defaults only.
        search: Whether to look for a devbox.yml when ``path`` is None.

    Returns:
        Validated DevboxConfig.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    data = _read_yaml(DEFAULTS_PATH)

    if path is None and search:
        path = find_config_file()

    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        logger.debug("Loading devbox config from %s", path)
        data = merge_config(data, _read_yaml(path))
    else:
        logger.debug("No %s found — using packaged defaults", CONFIG_FILE)

    try:
        config = DevboxConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid devbox configuration: {e}") from e

    logger.info(
        "Loaded config: %d formulae, %d casks, %d apt packages, %d plugins",
        len(config.catalogs.formulae),
        len(config.catalogs.casks),
        len(config.catalogs.apt),
        len(config.bundle.plugins),
    )
    return config
