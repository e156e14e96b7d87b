"""Backup artifact metadata shared by the producer, guard and restore engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


CLOUD_BACKUP_PREFIX = "cloud-backup-"
SAFETY_BACKUP_PREFIX = "pre-restore-"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


class BackupFormat(str, Enum):
    """Encoding of a backup file."""

    NOT_FOUND = "not_found"
    CUSTOM = "custom"
    SQL = "sql"
    SQL_GZ = "sql_gz"

    @property
    def label(self) -> str:
        return _FORMAT_LABELS[self]


_FORMAT_LABELS = {
    BackupFormat.NOT_FOUND: "Not found",
    BackupFormat.CUSTOM: "PostgreSQL custom format (.dump)",
    BackupFormat.SQL: "Plain SQL (.sql)",
    BackupFormat.SQL_GZ: "Compressed SQL (.sql.gz)",
}


class RestoreMode(str, Enum):
    """What part of a backup a restore replays."""

    SCHEMA_ONLY = "schema-only"
    FULL = "full"

    @property
    def schema_only(self) -> bool:
        return self is RestoreMode.SCHEMA_ONLY


@dataclass(frozen=True)
class BackupArtifact:
    """A backup file on disk."""

    path: Path
    size_bytes: int
    format: BackupFormat
    contains_data: bool = True

    @classmethod
    def from_path(cls, path: Path, fmt: BackupFormat, *, contains_data: bool = True) -> "BackupArtifact":
        path = Path(path)
        return cls(path=path, size_bytes=path.stat().st_size, format=fmt, contains_data=contains_data)

    @property
    def human_size(self) -> str:
        return format_size(self.size_bytes)


def format_size(size_bytes: int) -> str:
    """Format a byte count the way ``du -h`` does (1024 based, one decimal).

    Args:
        size_bytes: Size in bytes.

    Returns:
        str: Human readable size, e.g. ``512B``, ``1.5K``, ``12M``.
    """

    size = float(max(int(size_bytes), 0))
    for unit in ("B", "K", "M", "G", "T"):
        if size < 1024 or unit == "T":
            if unit == "B":
                return f"{int(size)}B"
            if size < 10:
                return f"{size:.1f}{unit}"
            return f"{size:.0f}{unit}"
        size /= 1024
    return f"{size:.0f}T"


def timestamped_backup_path(directory: Path, prefix: str, suffix: str, *, now: Optional[datetime] = None) -> Path:
    """Build a backup path that embeds its creation time.

    Args:
        directory: Backups directory.
        prefix: Role prefix (``cloud-backup-`` or ``pre-restore-``).
        suffix: File suffix including the dot.
        now: Override current time.

    Returns:
        Path: e.g. ``<directory>/pre-restore-20250101-120000.dump``.
    """

    stamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return Path(directory) / f"{prefix}{stamp}{suffix}"
