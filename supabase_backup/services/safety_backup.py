"""Snapshot of the local database taken right before a destructive restore."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from supabase_backup import console
from supabase_backup.prompts import Prompter
from supabase_backup.services.artifacts import (
    SAFETY_BACKUP_PREFIX,
    BackupArtifact,
    BackupFormat,
    timestamped_backup_path,
)
from supabase_backup.services.compose_database import ComposeDatabase
from supabase_backup.services.errors import ConfirmationDeclined, SafetyBackupError


logger = logging.getLogger(__name__)


class SafetyBackupGuard:
    """Create ``pre-restore-<timestamp>.dump`` backups of the target database."""

    def __init__(self, database: ComposeDatabase, backups_dir: Path, prompter: Prompter):
        self.database = database
        self.backups_dir = Path(backups_dir)
        self.prompter = prompter

    def create(self, *, now: Optional[datetime] = None) -> BackupArtifact:
        """Dump the current target database in custom format.

        Args:
            now: Override the timestamp embedded in the file name.

        Returns:
            BackupArtifact: The safety backup.

        Raises:
            ConfirmationDeclined: The database is not healthy and the operator
                chose not to continue.
            SafetyBackupError: The dump failed.
        """

        console.info("Creating safety backup before restore...")

        if not self.database.is_healthy():
            console.warning("Database container is not healthy")
            if not self.prompter.confirm("Continue anyway?", default=False):
                raise ConfirmationDeclined("Restore cancelled: database container is not healthy", exit_code=1)

        backup_path = timestamped_backup_path(self.backups_dir, SAFETY_BACKUP_PREFIX, ".dump", now=now)
        logger.info("Creating pre-restore backup: %s", backup_path)

        try:
            self.backups_dir.mkdir(parents=True, exist_ok=True)
            with open(backup_path, "wb") as f:
                result = self.database.dump_custom(f)
        except OSError as exc:
            self._discard(backup_path)
            raise SafetyBackupError(f"Failed to create safety backup: {exc}") from exc

        if not result.ok:
            result.log_output(logger)
            self._discard(backup_path)
            raise SafetyBackupError(f"Failed to create safety backup (pg_dump exit {result.returncode})")

        artifact = BackupArtifact.from_path(backup_path, BackupFormat.CUSTOM)
        console.success(f"Backup created: {artifact.path} ({artifact.human_size})")
        return artifact

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove incomplete safety backup %s: %s", path, exc)
