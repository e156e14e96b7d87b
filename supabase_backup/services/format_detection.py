"""Backup format detection.

The file name is checked first and wins whenever it carries one of the known
suffixes; only otherwise is the content sniffed. Anything that still cannot be
classified is treated as a custom dump, because ``pg_restore`` recognises
sub-formats this module does not.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from supabase_backup.services.artifacts import BackupFormat


_GZIP_MAGIC = b"\x1f\x8b"
_PGDUMP_MAGIC = b"PGDMP"
_SNIFF_BYTES = 8 * 1024

_SUFFIXES = (
    (".sql.gz", BackupFormat.SQL_GZ),
    (".sql", BackupFormat.SQL),
    (".dump", BackupFormat.CUSTOM),
    (".backup", BackupFormat.CUSTOM),
)


def format_from_name(name: str) -> Optional[BackupFormat]:
    """Classify a file by its name alone.

    Args:
        name: File name or path.

    Returns:
        Optional[BackupFormat]: Format implied by the suffix, if any.
    """

    lowered = str(name).lower()
    for suffix, fmt in _SUFFIXES:
        if lowered.endswith(suffix):
            return fmt
    return None


def format_from_content(head: bytes) -> BackupFormat:
    """Classify a file by its first bytes.

    Args:
        head: Leading bytes of the file.

    Returns:
        BackupFormat: Detected format; ``CUSTOM`` when nothing matches.
    """

    if head.startswith(_GZIP_MAGIC):
        return BackupFormat.SQL_GZ
    if head.startswith(_PGDUMP_MAGIC):
        return BackupFormat.CUSTOM
    if _looks_like_text(head):
        return BackupFormat.SQL
    return BackupFormat.CUSTOM


def _looks_like_text(head: bytes) -> bool:
    if not head or b"\x00" in head:
        return False
    try:
        head.decode("utf-8")
    except UnicodeDecodeError as exc:
        # A multi-byte character may be cut at the sniff boundary.
        if exc.start < len(head) - 3:
            return False
    return True


def detect_backup_format(path: Union[str, Path]) -> BackupFormat:
    """Detect the encoding of a backup file.

    Args:
        path: Path to the backup file.

    Returns:
        BackupFormat: Exactly one of the four tags; never raises for
        unreadable or ambiguous content.
    """

    backup_path = Path(path)
    if not backup_path.is_file():
        return BackupFormat.NOT_FOUND

    by_name = format_from_name(backup_path.name)
    if by_name is not None:
        return by_name

    try:
        with open(backup_path, "rb") as f:
            head = f.read(_SNIFF_BYTES)
    except OSError:
        return BackupFormat.CUSTOM
    return format_from_content(head)
