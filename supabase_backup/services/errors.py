"""Error taxonomy for backup and restore operations.

Every error carries the process exit code the CLI should use for it.
Non-zero exits of ``pg_restore`` are not errors at all; they are reported as
warnings by the restore engine.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class BackupRestoreError(RuntimeError):
    """Base class for all failures surfaced to the operator."""

    exit_code = 1


class ConfirmationDeclined(BackupRestoreError):
    """Raised when the operator answers a confirmation gate negatively.

    This is a user abort, not a failure. It exits 0 unless raised from a gate
    where declining leaves the requested operation unfinished (the safety
    backup gates), in which case the caller passes ``exit_code=1``.
    """

    exit_code = 0

    def __init__(self, message: str = "Cancelled by user", *, exit_code: int = 0):
        super().__init__(message)
        self.exit_code = exit_code


class PrerequisiteError(BackupRestoreError):
    """Raised when the environment lacks something the operation requires."""


class ArtifactNotFoundError(PrerequisiteError):
    """Raised when the backup file to restore does not exist."""

    def __init__(self, path: Path):
        super().__init__(f"Backup file not found: {path}")
        self.path = path


class ConnectivityError(BackupRestoreError):
    """Raised when the source database cannot be reached or rejects the login."""


class BackupError(BackupRestoreError):
    """Raised when a dump fails after the connection was verified."""


class SafetyBackupError(BackupRestoreError):
    """Raised when the pre-restore snapshot of the target cannot be created."""


class ApplyError(BackupRestoreError):
    """Raised when a plain SQL restore pipeline exits non-zero."""


class VerificationError(BackupRestoreError):
    """Raised when the target is not ready or not reachable after a restore."""

    def __init__(self, message: str, *, safety_backup: Optional[Path] = None):
        super().__init__(message)
        self.safety_backup = safety_backup
