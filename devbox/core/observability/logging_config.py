"""
Logging configuration — one call from main.py sets up the whole process.

Modules only ever do ``logger = logging.getLogger(__name__)``.

Console level: ``--debug`` / ``-v`` / ``-q``, else ``DEVBOX_LOG_LEVEL``,
else WARNING. ``DEVBOX_LOG_FILE`` adds a file handler that always
writes the detailed format, at ``DEVBOX_LOG_FILE_LEVEL`` if given.

While a pipeline stage runs, its name is attached to every record
(``record.stage``), so ``-v`` output reads as a sequence of stages.
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
import sys
from collections.abc import Iterator
from pathlib import Path

_DETAILED = ("%(asctime)s %(levelname)-5s [%(stage)s] %(name)s:%(lineno)d — %(message)s", "%H:%M:%S")

# Console format by verbosity; anything above INFO prints bare messages
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: _DETAILED,
    logging.INFO: ("%(asctime)s [%(stage)s] %(message)s", "%H:%M:%S"),
}
_PLAIN = ("%(message)s", None)
_FILE_FORMAT = (_DETAILED[0], "%Y-%m-%d %H:%M:%S")

# Held at WARNING unless the console is at DEBUG
_NOISY_LOGGERS = ("urllib3", "charset_normalizer", "asyncio")

_current_stage: contextvars.ContextVar[str] = contextvars.ContextVar("devbox_stage", default="-")


class StageFilter(logging.Filter):
    """Copy the active stage name onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.stage = _current_stage.get()
        return True


@contextlib.contextmanager
def stage_scope(name: str) -> Iterator[None]:
    """Records logged inside the block carry ``stage=name``."""
    token = _current_stage.set(name)
    try:
        yield
    finally:
        _current_stage.reset(token)


def _handler(
    handler: logging.Handler,
    level: int,
    fmt: tuple[str, str | None],
    stage_filter: StageFilter,
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt[0], datefmt=fmt[1]))
    handler.addFilter(stage_filter)
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Replace the root logger's handlers with devbox's console (and file) handler.

    Args:
        level: Console level name.
        log_file: Also log to this file.
        log_file_level: File level name; defaults to ``level``.
        quiet_third_party: Hold ``_NOISY_LOGGERS`` at WARNING unless the
            console is at DEBUG.
    """
    console_level = _parse_level(level)
    stage_filter = StageFilter()

    handlers = [
        _handler(
            logging.StreamHandler(sys.stderr),
            console_level,
            _CONSOLE_FORMATS.get(console_level, _PLAIN),
            stage_filter,
        )
    ]
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _handler(
                logging.FileHandler(log_file, encoding="utf-8"),
                file_level,
                _FILE_FORMAT,
                stage_filter,
            )
        )

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name → number; unknown or empty names mean WARNING."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
