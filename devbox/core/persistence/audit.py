"""
Audit ledger — append-only run log.

Every provision, bundle and unpack run appends one entry to an NDJSON
file next to the state file. Entries are never modified or deleted;
``devbox status`` reads the tail back.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """One run, as recorded in the ledger."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str = ""
    kind: str = ""                 # provision, bundle, unpack

    status: str = ""               # ok, partial, failed
    stages: dict[str, str] = Field(default_factory=dict)
    actions_total: int = 0
    actions_failed: int = 0
    installed: list[str] = Field(default_factory=list)
    backed_up: list[str] = Field(default_factory=list)
    duration_ms: int = 0
    errors: list[str] = Field(default_factory=list)

    # dry_run, platform, archive, ...
    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Appends run entries to an NDJSON ledger and reads them back.

    A write that fails is logged, never raised: losing a ledger line
    must not fail a provisioning run that otherwise succeeded.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        record = entry.model_dump_json()
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(record + "\n")
        except OSError as e:
            logger.error("Could not append to %s: %s", self._path, e)
            return
        logger.debug("Ledger += %s %s (%s)", entry.kind, entry.run_id, entry.status)

    def _iter_entries(self, kind: str | None) -> Iterator[AuditEntry]:
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error("Could not read %s: %s", self._path, e)
            return

        for lineno, raw in enumerate(lines, start=1):
            if not raw.strip():
                continue
            try:
                entry = AuditEntry.model_validate(json.loads(raw))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning("%s:%d unreadable, skipped (%s)", self._path.name, lineno, e)
                continue
            if kind is None or entry.kind == kind:
                yield entry

    def read_all(self, kind: str | None = None) -> list[AuditEntry]:
        """Entries oldest first, optionally only runs of one kind."""
        return list(self._iter_entries(kind))

    def read_recent(self, n: int = 20, kind: str | None = None) -> list[AuditEntry]:
        """The last ``n`` entries, oldest first."""
        return list(deque(self._iter_entries(kind), maxlen=n))
