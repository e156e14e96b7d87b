"""Download a Supabase Cloud database into a local compressed SQL backup."""

from __future__ import annotations

import gzip
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import psycopg2

from supabase_backup import console
from supabase_backup.prompts import Prompter
from supabase_backup.schemas.database_config import ConnectionProfile, normalize_host
from supabase_backup.services.artifacts import (
    CLOUD_BACKUP_PREFIX,
    BackupArtifact,
    BackupFormat,
    timestamped_backup_path,
)
from supabase_backup.services.credentials import CredentialStore
from supabase_backup.services.errors import (
    BackupError,
    ConfirmationDeclined,
    ConnectivityError,
    PrerequisiteError,
)
from supabase_backup.services.source_database import DatabaseStats, SourceDatabase, client_tools_available
from supabase_backup.settings import Settings


logger = logging.getLogger(__name__)

SourceFactory = Callable[[ConnectionProfile], SourceDatabase]


class CloudBackupProducer:
    """Collect source credentials, verify them and dump the source database."""

    def __init__(
        self,
        settings: Settings,
        prompter: Prompter,
        *,
        credential_store: Optional[CredentialStore] = None,
        source_factory: Optional[SourceFactory] = None,
    ):
        self.settings = settings
        self.prompter = prompter
        self.credential_store = credential_store or CredentialStore(settings.credentials_path)
        self.source_factory = source_factory or (
            lambda profile: SourceDatabase(profile, connect_timeout=settings.SOURCE_CONNECT_TIMEOUT)
        )

    # Credentials

    def resolve_profile(self) -> ConnectionProfile:
        """Reuse saved credentials or ask for new ones (optionally saving them)."""
        saved = self.credential_store.load()
        if saved is not None:
            console.info("Found saved credentials")
            console.detail(f"Host: {saved.host}")
            console.detail(f"Port: {saved.port}")
            console.detail(f"DB:   {saved.database}")
            console.detail(f"User: {saved.user}")
            if self.prompter.confirm("Use saved credentials?", default=True):
                return saved

        profile = self.prompt_profile()
        if self.prompter.confirm("Save credentials for future use?", default=True):
            self.credential_store.save(profile)
            console.success("Credentials saved for future use")
        return profile

    def prompt_profile(self) -> ConnectionProfile:
        console.info("Enter Supabase Cloud credentials")
        host = normalize_host(self.prompter.ask("Host - hostname ONLY, no https:// (e.g. db.xxxxx.supabase.co)"))
        while not host:
            console.error("Host cannot be empty")
            host = normalize_host(self.prompter.ask("Host (hostname only)"))

        port = self.prompter.ask("Port", "5432")
        while not port.isdigit():
            console.error("Port must be a number")
            port = self.prompter.ask("Port", "5432")

        database = self.prompter.ask("Database", "postgres")
        user = self.prompter.ask("User", "postgres")

        password = self.prompter.ask_secret("Password (can contain special characters)")
        while not password:
            console.error("Password cannot be empty")
            password = self.prompter.ask_secret("Password")

        return ConnectionProfile(host=host, port=int(port), database=database, user=user, password=password)

    # Pipeline steps

    def check_connection(self, source: SourceDatabase) -> str:
        """Run the read-only connectivity test.

        Raises:
            ConnectivityError: The source cannot be reached or rejects the login.
        """

        console.info("Testing connection to Supabase Cloud...")
        logger.info("Testing connection: %s", source.profile.describe())
        try:
            version = source.test_connection()
        except psycopg2.Error as exc:
            logger.error("Connection test failed: %s", str(exc).strip())
            raise ConnectivityError(
                "Cannot connect to Supabase Cloud. Check the credentials, that your IP is allowed "
                f"in the Supabase Cloud dashboard, and that port {source.profile.port} is not "
                "blocked by a firewall (use the direct connection, not the pooler)"
            ) from exc
        console.success("Connection successful")
        return version

    def show_stats(self, source: SourceDatabase) -> DatabaseStats:
        console.info("Fetching database information...")
        stats = source.get_stats()
        console.detail(stats.version or "Unable to get version")
        console.detail(f"Size: {stats.size or 'unknown'}")
        if stats.tables_by_schema:
            console.detail("Tables by schema:")
            for schema, count in stats.tables_by_schema:
                console.detail(f"  {schema:<24} {count}")
        else:
            console.detail("Unable to get table info")
        return stats

    def dump(self, source: SourceDatabase, *, now: Optional[datetime] = None) -> BackupArtifact:
        """Dump to ``cloud-backup-<timestamp>.sql`` and gzip it in place.

        Raises:
            BackupError: pg_dump or compression failed; no artifact is left behind.
        """

        backups_dir = self.settings.backups_path
        try:
            backups_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BackupError(f"Cannot create backups directory {backups_dir}: {exc}") from exc
        sql_path = timestamped_backup_path(backups_dir, CLOUD_BACKUP_PREFIX, ".sql", now=now)
        gz_path = sql_path.with_name(sql_path.name + ".gz")

        console.info("Starting backup from Supabase Cloud...")
        console.warning("This may take several minutes depending on database size...")
        logger.info("Starting pg_dump: %s output=%s", source.profile.describe(), sql_path)

        result = source.dump_plain(sql_path)
        result.log_output(logger)
        if not result.ok:
            _remove(sql_path)
            raise BackupError(f"Backup failed: pg_dump exited with status {result.returncode}")

        console.info("Compressing backup...")
        try:
            with open(sql_path, "rb") as f_in, gzip.open(gz_path, "wb") as f_out:
                shutil.copyfileobj(f_in, f_out)
        except OSError as exc:
            _remove(gz_path)
            raise BackupError(f"Failed to compress backup: {exc}") from exc
        _remove(sql_path)

        artifact = BackupArtifact.from_path(gz_path, BackupFormat.SQL_GZ)
        logger.info("Backup successful: %s (size: %s)", artifact.path, artifact.human_size)
        return artifact

    def run(self) -> BackupArtifact:
        """Run the interactive cloud backup.

        Returns:
            BackupArtifact: The new backup.

        Raises:
            PrerequisiteError: pg_dump is missing.
            ConnectivityError: The source is unreachable.
            ConfirmationDeclined: The operator cancelled before the dump.
            BackupError: The dump failed.
        """

        if not client_tools_available():
            raise PrerequisiteError(
                "PostgreSQL client tools (pg_dump) not found; install the postgresql-client package"
            )
        console.success("PostgreSQL client tools available")

        profile = self.resolve_profile()
        source = self.source_factory(profile)

        self.check_connection(source)
        self.show_stats(source)

        console.warning("Ready to backup database from Supabase Cloud")
        if not self.prompter.confirm("Proceed with backup?", default=True):
            raise ConfirmationDeclined("Backup cancelled by user")

        return self.dump(source)


def _remove(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Failed to remove %s: %s", path, exc)
