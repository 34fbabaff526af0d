"""
Backup operations — move existing dotfiles aside before overwriting.

Backups are directories, not archives: ``~/backup_configs_<stamp>/``
holds each moved path under its home-relative name, so
``.config/nvim`` lands in ``<backup>/.config/nvim`` and nested
candidates never collide.

Deletion is deferred twice over. Every backup is recorded in the state
file with a ``delete_after`` time and swept on a later run; when ``at``
is available a job is also queued to remove it.
"""

from __future__ import annotations

import logging
import shlex
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from devbox.adapters.registry import AdapterRegistry
from devbox.core.models.action import Action
from devbox.core.models.platform import PlatformFacts
from devbox.core.models.state import BackupRecord, DevboxState
from devbox.core.services.presence import path_exists

logger = logging.getLogger(__name__)

STAMP_FORMAT = "%Y%m%d%H%M%S"
DEFAULT_PREFIX = "backup_configs_"


# ═══════════════════════════════════════════════════════════════════
#  Results
# ═══════════════════════════════════════════════════════════════════


@dataclass
class BackupResult:
    """What the backup step moved, and where."""

    directory: Path | None = None
    moved: list[tuple[Path, Path]] = field(default_factory=list)
    record: BackupRecord | None = None
    scheduled: bool = False
    dry_run: bool = False

    @property
    def sources(self) -> list[str]:
        return [str(src) for src, _ in self.moved]

    def to_dict(self) -> dict:
        return {
            "directory": str(self.directory) if self.directory else None,
            "moved": {str(src): str(dst) for src, dst in self.moved},
            "delete_after": self.record.delete_after if self.record else None,
            "scheduled": self.scheduled,
            "dry_run": self.dry_run,
        }


@dataclass
class SweepResult:
    """Backups deleted (or found already gone) by a sweep."""

    removed: list[str] = field(default_factory=list)
    already_gone: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    pending: int = 0

    def to_dict(self) -> dict:
        return {
            "removed": self.removed,
            "already_gone": self.already_gone,
            "errors": self.errors,
            "pending": self.pending,
        }


# ═══════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════


def local_now() -> datetime:
    """Timezone-aware local time (backup names follow the local clock)."""
    return datetime.now().astimezone()


def backup_dir_name(now: datetime, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}{now.strftime(STAMP_FORMAT)}"


def claim_backup_dir(home: Path, now: datetime, prefix: str = DEFAULT_PREFIX) -> Path:
    """Create a fresh backup directory, suffixing ``-1``, ``-2`` ... on collision."""
    base = backup_dir_name(now, prefix)
    candidate = home / base
    n = 0
    while True:
        try:
            candidate.mkdir()
            return candidate
        except FileExistsError:
            n += 1
            candidate = home / f"{base}-{n}"


def _next_free_name(home: Path, now: datetime, prefix: str) -> Path:
    # Same naming rule as claim_backup_dir, without creating anything
    base = backup_dir_name(now, prefix)
    candidate, n = home / base, 0
    while path_exists(candidate):
        n += 1
        candidate = home / f"{base}-{n}"
    return candidate


# ═══════════════════════════════════════════════════════════════════
#  Backup
# ═══════════════════════════════════════════════════════════════════


def backup_configs(
    facts: PlatformFacts,
    candidates: list[str],
    *,
    registry: AdapterRegistry | None = None,
    now: datetime | None = None,
    retention_days: int = 30,
    schedule_cleanup: bool = True,
    prefix: str = DEFAULT_PREFIX,
    dry_run: bool = False,
) -> BackupResult:
    """Move every existing candidate into a new backup directory.

    Args:
        facts: Host facts; candidates are relative to ``facts.home``.
        candidates: Home-relative paths (``.bashrc``, ``.config/nvim``).
        registry: Used to queue the ``at`` cleanup job.
        now: Timezone-aware timestamp for the directory name and
            retention window (default: local now).
        retention_days: Days before the backup may be deleted.
        schedule_cleanup: Queue an ``at`` job when ``at`` is available.
        prefix: Backup directory name prefix.
        dry_run: Report what would move without touching anything.

    Returns:
        BackupResult. ``directory`` is None when nothing existed.
    """
    now = now or local_now()
    result = BackupResult(dry_run=dry_run)

    present = [rel for rel in candidates if path_exists(facts.home_path(rel))]
    if not present:
        logger.info("No existing config to back up")
        return result

    if dry_run:
        result.directory = _next_free_name(facts.home, now, prefix)
        result.moved = [(facts.home_path(rel), result.directory / rel) for rel in present]
        for src, dst in result.moved:
            logger.info("[dry-run] Would move %s → %s", src, dst)
        return result

    directory = claim_backup_dir(facts.home, now, prefix)
    result.directory = directory

    for rel in present:
        src = facts.home_path(rel)
        if not path_exists(src):
            # Moved along with an enclosing candidate
            continue
        dst = directory / rel
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(src), str(dst))
        result.moved.append((src, dst))
        logger.info("Backed up %s → %s", src, dst)

    delete_after = now + timedelta(days=retention_days)
    result.record = BackupRecord(
        directory=str(directory),
        created_at=now.isoformat(),
        delete_after=delete_after.isoformat(),
        moved={str(src): str(dst) for src, dst in result.moved},
    )

    if schedule_cleanup and registry is not None:
        result.scheduled = schedule_deletion(registry, directory, retention_days)
    result.record.scheduled = result.scheduled

    if not result.scheduled:
        logger.warning(
            "Backup kept in %s — it will be removed by the first devbox run after %s",
            directory,
            delete_after.strftime("%Y-%m-%d"),
        )
    return result


def schedule_deletion(registry: AdapterRegistry, directory: Path, days: int) -> bool:
    """Queue ``rm -rf <directory>`` with ``at``. Returns whether it was accepted."""
    if not registry.is_available("at"):
        logger.info("'at' is not available — relying on the next-run sweep")
        return False

    receipt = registry.execute(
        Action.build(
            "at",
            "schedule",
            directory.name,
            stage="backup",
            when=f"now + {days} days",
            command=f"rm -rf {shlex.quote(str(directory))}",
        )
    )
    if receipt.ok:
        logger.info("Scheduled removal of %s in %d days", directory, days)
        return True
    if not receipt.skipped:
        logger.warning("Could not schedule removal of %s: %s", directory, receipt.error)
    return False


# ═══════════════════════════════════════════════════════════════════
#  Sweep & listing
# ═══════════════════════════════════════════════════════════════════


def sweep_backups(
    state: DevboxState,
    now: datetime | None = None,
    *,
    dry_run: bool = False,
) -> SweepResult:
    """Delete recorded backups whose retention window has passed.

    Directories already removed (by ``at`` or by hand) are marked swept
    too. Failures to delete are logged and the record stays pending.
    """
    now = now or local_now()
    result = SweepResult()

    for record in state.pending_backups():
        if not record.is_expired(now):
            continue

        directory = Path(record.directory)
        if not directory.exists():
            result.already_gone.append(record.directory)
            if not dry_run:
                record.swept = True
            continue

        if dry_run:
            logger.info("[dry-run] Would remove expired backup %s", directory)
            result.removed.append(record.directory)
            continue

        try:
            shutil.rmtree(directory)
        except OSError as e:
            logger.warning("Could not remove expired backup %s: %s", directory, e)
            result.errors.append(f"{record.directory}: {e}")
            continue

        record.swept = True
        result.removed.append(record.directory)
        logger.info("Removed expired backup %s", directory)

    result.pending = len(state.pending_backups())
    return result


def list_backups(state: DevboxState, now: datetime | None = None) -> list[dict]:
    """Recorded backups, newest first."""
    now = now or local_now()
    rows = []
    for record in sorted(state.backups, key=lambda r: r.created_at, reverse=True):
        rows.append({
            "directory": record.directory,
            "created_at": record.created_at,
            "delete_after": record.delete_after,
            "exists": Path(record.directory).exists(),
            "expired": record.is_expired(now),
            "scheduled": record.scheduled,
            "swept": record.swept,
            "paths": len(record.moved),
        })
    return rows
