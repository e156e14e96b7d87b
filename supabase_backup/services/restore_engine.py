"""Restore a backup artifact into the local Supabase database.

A restore walks a fixed sequence of states::

    start -> prerequisite-check -> format-detect -> mode-select -> confirm
          -> safety-backup -> apply -> verify -> restart-dependents -> done

Any step may end in ``failed``. The one deliberate leniency is ``pg_restore``:
it routinely exits non-zero for recoverable problems (missing extensions,
objects that do not exist yet for ``--clean``), so a non-zero exit on the
custom-format path is reported as a warning and the restore carries on to
verification. The plain SQL paths have no such leniency.

Concurrent restores against the same deployment are not guarded against;
two interleaved safety-backup/apply sequences would corrupt each other's
rollback point.
"""

from __future__ import annotations

import logging
import zlib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from supabase_backup import console
from supabase_backup.prompts import Prompter
from supabase_backup.services.artifacts import BackupArtifact, BackupFormat, RestoreMode, format_size
from supabase_backup.services.compose_database import ComposeDatabase
from supabase_backup.services.errors import (
    ApplyError,
    ArtifactNotFoundError,
    BackupRestoreError,
    ConfirmationDeclined,
    SafetyBackupError,
    VerificationError,
)
from supabase_backup.services.format_detection import detect_backup_format
from supabase_backup.services.prerequisites import check_deployment, require_root
from supabase_backup.services.safety_backup import SafetyBackupGuard
from supabase_backup.services.sql_filter import filter_sql_lines, read_sql_lines
from supabase_backup.services.verifier import PostRestoreVerifier
from supabase_backup.settings import Settings


logger = logging.getLogger(__name__)


class RestoreState(str, Enum):
    START = "start"
    PREREQUISITE_CHECK = "prerequisite-check"
    FORMAT_DETECT = "format-detect"
    MODE_SELECT = "mode-select"
    CONFIRM = "confirm"
    SAFETY_BACKUP = "safety-backup"
    APPLY = "apply"
    VERIFY = "verify"
    RESTART_DEPENDENTS = "restart-dependents"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RestoreOutcome:
    """Summary of a completed restore."""

    artifact: BackupArtifact
    mode: RestoreMode
    safety_backup: Optional[BackupArtifact]
    apply_warning: bool = False
    tables_by_schema: List[Tuple[str, int]] = field(default_factory=list)
    restarted_services: List[str] = field(default_factory=list)


class RestoreEngine:
    """Sequence a restore from prerequisite checks through service restarts."""

    def __init__(
        self,
        settings: Settings,
        database: ComposeDatabase,
        prompter: Prompter,
        *,
        guard: Optional[SafetyBackupGuard] = None,
        verifier: Optional[PostRestoreVerifier] = None,
    ):
        self.settings = settings
        self.database = database
        self.prompter = prompter
        self.guard = guard or SafetyBackupGuard(database, settings.backups_path, prompter)
        self.verifier = verifier or PostRestoreVerifier(
            database,
            timeout_seconds=settings.READY_TIMEOUT_SECONDS,
            poll_interval=settings.READY_POLL_INTERVAL_SECONDS,
            dependent_services=settings.DEPENDENT_SERVICES,
            settle_seconds=settings.SERVICE_SETTLE_SECONDS,
        )
        self.state = RestoreState.START
        self.history: List[RestoreState] = [RestoreState.START]

    def _enter(self, state: RestoreState) -> None:
        self.state = state
        self.history.append(state)
        logger.info("Restore state: %s", state.value)

    def run(self, artifact_path: Path, *, mode: Optional[RestoreMode] = None) -> RestoreOutcome:
        """Restore ``artifact_path`` into the local database.

        Args:
            artifact_path: Backup file to restore.
            mode: Preselected restore mode; prompts when None.

        Returns:
            RestoreOutcome: What was restored and how.

        Raises:
            BackupRestoreError: Any fatal condition, including operator aborts
                (``ConfirmationDeclined``).
        """

        try:
            return self._run(Path(artifact_path), mode)
        except BackupRestoreError:
            self._enter(RestoreState.FAILED)
            raise

    def _run(self, artifact_path: Path, mode: Optional[RestoreMode]) -> RestoreOutcome:
        self._enter(RestoreState.PREREQUISITE_CHECK)
        if not artifact_path.is_file():
            raise ArtifactNotFoundError(artifact_path)
        size = artifact_path.stat().st_size
        console.info(f"Backup file: {artifact_path}")
        console.info(f"File size: {format_size(size)}")

        console.info("Checking prerequisites...")
        require_root(self.settings)
        check_deployment(self.settings, self.database)
        console.success("Prerequisites verified")

        self._enter(RestoreState.FORMAT_DETECT)
        fmt = detect_backup_format(artifact_path)
        if fmt is BackupFormat.NOT_FOUND:
            raise ArtifactNotFoundError(artifact_path)
        artifact = BackupArtifact(path=artifact_path, size_bytes=size, format=fmt)
        console.info(f"Detected format: {fmt.value} ({fmt.label})")

        self._enter(RestoreState.MODE_SELECT)
        if mode is None:
            mode = self.prompter.choose_restore_mode()
        if mode.schema_only:
            console.info("Selected: Schema only (fresh start)")
        else:
            console.info("Selected: Full restore (schema + data)")

        self._enter(RestoreState.CONFIRM)
        self._confirm(mode)

        self._enter(RestoreState.SAFETY_BACKUP)
        safety_backup = self._create_safety_backup()

        self._enter(RestoreState.APPLY)
        apply_warning = self._apply(artifact, mode)

        self._enter(RestoreState.VERIFY)
        try:
            stats = self.verifier.verify(safety_backup=safety_backup.path if safety_backup else None)
        except VerificationError:
            console.error("Database verification failed")
            if safety_backup is not None:
                console.warning("You may need to restore from the safety backup:")
                console.command_hint(f"restore-database {safety_backup.path}")
            raise

        self._enter(RestoreState.RESTART_DEPENDENTS)
        restarted = self.verifier.restart_dependents()

        self._enter(RestoreState.DONE)
        return RestoreOutcome(
            artifact=artifact,
            mode=mode,
            safety_backup=safety_backup,
            apply_warning=apply_warning,
            tables_by_schema=stats,
            restarted_services=restarted,
        )

    def _confirm(self, mode: RestoreMode) -> None:
        console.warning("WARNING: This will affect your current database!")
        if mode.schema_only:
            console.warning("Existing tables will be dropped and recreated (empty)")
        else:
            console.warning("All existing data will be replaced")
        console.info("A safety backup will be created first.")
        if not self.prompter.confirm("Do you want to continue with the restore?", default=False):
            raise ConfirmationDeclined("Restore cancelled by user")
        logger.info("Restore mode: %s", mode.value)

    def _create_safety_backup(self) -> Optional[BackupArtifact]:
        try:
            return self.guard.create()
        except SafetyBackupError as exc:
            console.error(str(exc))
            if not self.prompter.confirm("Continue without safety backup?", default=False):
                raise ConfirmationDeclined("Restore cancelled: no safety backup", exit_code=1) from exc
            console.warning("Continuing without a safety backup")
            return None

    def _apply(self, artifact: BackupArtifact, mode: RestoreMode) -> bool:
        """Apply the artifact; returns True when pg_restore reported problems."""
        console.info("Starting restore process...")
        console.warning("This may take several minutes depending on database size...")
        logger.info("Restoring %s format: %s (mode: %s)", artifact.format.value, artifact.path, mode.value)
        if mode.schema_only:
            console.info("Filtering: Schema only (skipping data)")

        if artifact.format is BackupFormat.CUSTOM:
            result = self.database.restore_custom(artifact.path, schema_only=mode.schema_only)
            result.log_output(logger)
            if not result.ok:
                console.warning("Restore completed with some warnings (this is often normal)")
                logger.warning("pg_restore exited with status %s", result.returncode)
                return True
        else:
            lines = read_sql_lines(artifact.path, compressed=artifact.format is BackupFormat.SQL_GZ)
            try:
                result = self.database.run_sql(filter_sql_lines(lines, schema_only=mode.schema_only))
            except (OSError, EOFError, zlib.error) as exc:
                raise ApplyError(f"Cannot read backup file {artifact.path}: {exc}") from exc
            result.log_output(logger)
            if not result.ok:
                raise ApplyError(f"SQL restore failed (psql exit {result.returncode})")

        if mode.schema_only:
            console.success("Schema restored successfully (no data)")
        else:
            console.success("Database restored successfully (schema + data)")
        return False
