"""
State file persistence — atomic read/write for DevboxState.

State lives in ``~/.local/state/devbox/state.json``. Writes are atomic
(write to temp file, then rename) so an interrupted run never leaves a
half-written state behind. ``atomic_write_text`` is reused for the
generated editor configuration for the same reason.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from devbox.core.models.platform import PlatformFacts
from devbox.core.models.state import DevboxState

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = "state.json"


def default_state_path(facts: PlatformFacts, state_dir: str) -> Path:
    """State file path under the user's home."""
    return facts.home_path(state_dir) / DEFAULT_STATE_FILE


def load_state(path: Path) -> DevboxState:
    """Load devbox state from a JSON file.

    Returns a fresh state if the file is missing or unreadable.
    """
    if not path.is_file():
        logger.debug("No state file at %s — starting fresh", path)
        return DevboxState()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        state = DevboxState.model_validate(data)
        logger.debug("Loaded state from %s (updated_at=%s)", path, state.updated_at)
        return state
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s: %s — starting fresh", path, e)
        return DevboxState()
    except Exception as e:
        logger.warning("Cannot load state from %s: %s — starting fresh", path, e)
        return DevboxState()


def atomic_write_text(path: Path, content: str, *, prefix: str = ".devbox_") -> None:
    """Write ``content`` to ``path`` via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=prefix, suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with open(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def save_state(state: DevboxState, path: Path) -> None:
    """Save devbox state to a JSON file (atomic write)."""
    state.touch()

    data = state.model_dump(mode="json")
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    try:
        atomic_write_text(path, content, prefix=".state_")
        logger.debug("State saved to %s", path)
    except Exception as e:
        logger.error("Failed to save state to %s: %s", path, e)
        raise
