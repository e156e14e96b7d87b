"""Keep-last-N retention for backups in the local backups directory.

Backups are grouped by role prefix (``pre-restore-``, ``cloud-backup-``) and
ordered by the timestamp embedded in their name, falling back to the file
modification time. Pruning only ever happens on explicit request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from supabase_backup.services.artifacts import (
    CLOUD_BACKUP_PREFIX,
    SAFETY_BACKUP_PREFIX,
    TIMESTAMP_FORMAT,
)


logger = logging.getLogger(__name__)

BACKUP_PREFIXES = (SAFETY_BACKUP_PREFIX, CLOUD_BACKUP_PREFIX)
_STAMP_LENGTH = len("20250101-120000")


@dataclass(frozen=True)
class BackupObject:
    """Metadata about a stored backup file."""

    path: Path
    created_at: datetime
    size: int

    @property
    def name(self) -> str:
        return self.path.name


def _created_at(path: Path, prefix: str) -> datetime:
    stamp = path.name[len(prefix):len(prefix) + _STAMP_LENGTH]
    try:
        return datetime.strptime(stamp, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


def list_backups(backups_dir: Path, *, prefix: str) -> List[BackupObject]:
    """List backups with the given prefix, oldest first.

    Args:
        backups_dir: Directory to scan (not recursive).
        prefix: File name prefix.

    Returns:
        List[BackupObject]: Matching backups.
    """

    directory = Path(backups_dir)
    if not directory.is_dir():
        return []

    backups = []
    for path in directory.iterdir():
        if not path.is_file() or not path.name.startswith(prefix):
            continue
        backups.append(BackupObject(path=path, created_at=_created_at(path, prefix), size=path.stat().st_size))
    backups.sort(key=lambda b: (b.created_at, b.name))
    return backups


def plan_retention(
    backups: Sequence[BackupObject],
    keep_last: int,
) -> Tuple[List[BackupObject], List[BackupObject]]:
    """Return (keep, delete) lists keeping the newest ``keep_last`` backups.

    Args:
        backups: Existing backups.
        keep_last: Number of newest backups to keep; values below 1 keep one.

    Returns:
        Tuple[List[BackupObject], List[BackupObject]]: Keep and delete lists,
        both oldest first.
    """

    if not backups:
        return [], []

    keep_last = max(int(keep_last), 1)
    backups_sorted = sorted(backups, key=lambda b: (b.created_at, b.name))  # oldest -> newest
    return backups_sorted[-keep_last:], backups_sorted[:-keep_last]


def delete_backups(backups: Sequence[BackupObject]) -> List[BackupObject]:
    """Delete the given backups; failures are logged and skipped.

    Returns:
        List[BackupObject]: Backups actually deleted.
    """

    deleted = []
    for backup in backups:
        try:
            backup.path.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Failed to delete %s: %s", backup.path, exc)
            continue
        logger.info("Deleted old backup %s", backup.path)
        deleted.append(backup)
    return deleted


def prune_backups(
    backups_dir: Path,
    *,
    keep_last: int,
    prefixes: Optional[Sequence[str]] = None,
    dry_run: bool = False,
) -> List[BackupObject]:
    """Apply keep-last-N retention to every prefix group.

    Args:
        backups_dir: Backups directory.
        keep_last: Backups to keep per prefix.
        prefixes: Prefix groups; defaults to safety and cloud backups.
        dry_run: Only report what would be deleted.

    Returns:
        List[BackupObject]: Backups deleted (or that would be deleted).
    """

    removed: List[BackupObject] = []
    for prefix in prefixes or BACKUP_PREFIXES:
        _, delete = plan_retention(list_backups(backups_dir, prefix=prefix), keep_last)
        removed.extend(delete if dry_run else delete_backups(delete))
    return removed
