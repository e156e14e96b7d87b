"""Access to the remote (Supabase Cloud) source database."""
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import psycopg2

from supabase_backup.schemas.database_config import ConnectionProfile
from supabase_backup.services.commands import ToolResult, run_command


logger = logging.getLogger(__name__)

TABLES_BY_SCHEMA_SQL = """
    SELECT schemaname, COUNT(*) AS tables
    FROM pg_tables
    GROUP BY schemaname
    ORDER BY tables DESC, schemaname
    LIMIT 5;
"""


@dataclass
class DatabaseStats:
    """Descriptive statistics shown before a backup and after a restore."""

    version: Optional[str] = None
    size: Optional[str] = None
    tables_by_schema: List[Tuple[str, int]] = field(default_factory=list)


class SourceDatabase:
    """Service for checking and dumping a remote PostgreSQL database."""

    def __init__(self, profile: ConnectionProfile, *, connect_timeout: int = 10):
        self.profile = profile
        self.connect_timeout = connect_timeout

    def _connect(self):
        return psycopg2.connect(
            host=self.profile.host,
            port=self.profile.port,
            dbname=self.profile.database,
            user=self.profile.user,
            password=self.profile.password,
            connect_timeout=self.connect_timeout,
        )

    def test_connection(self) -> str:
        """Run ``SELECT version();`` against the source.

        Returns:
            str: Server version string.

        Raises:
            psycopg2.Error: If the connection or the query fails.
        """

        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT version();")
                return cur.fetchone()[0]
        finally:
            conn.close()

    def get_stats(self) -> DatabaseStats:
        """Collect version, size and table counts; each part is best effort."""
        stats = DatabaseStats()
        try:
            conn = self._connect()
        except psycopg2.Error as exc:
            logger.warning("Unable to fetch database statistics: %s", exc)
            return stats

        try:
            with conn.cursor() as cur:
                for attribute, query, params in (
                    ("version", "SELECT version();", None),
                    ("size", "SELECT pg_size_pretty(pg_database_size(%s));", (self.profile.database,)),
                ):
                    try:
                        cur.execute(query, params)
                        setattr(stats, attribute, cur.fetchone()[0])
                    except psycopg2.Error as exc:
                        conn.rollback()
                        logger.warning("Unable to get database %s: %s", attribute, exc)
                try:
                    cur.execute(TABLES_BY_SCHEMA_SQL)
                    stats.tables_by_schema = [(schema, int(count)) for schema, count in cur.fetchall()]
                except psycopg2.Error as exc:
                    conn.rollback()
                    logger.warning("Unable to get table info: %s", exc)
        finally:
            conn.close()
        return stats

    def dump_plain(self, output_file: Path) -> ToolResult:
        """Dump the whole database as a re-appliable plain SQL script.

        Args:
            output_file: Destination ``.sql`` file.

        Returns:
            ToolResult: pg_dump outcome.
        """

        cmd = [
            "pg_dump",
            "-h", self.profile.host,
            "-p", str(self.profile.port),
            "-U", self.profile.user,
            "-d", self.profile.database,
            "--format=plain",
            "--no-owner",   # Don't include ownership commands
            "--no-acl",     # Don't include access privileges
            "--create",
            "--clean",
            "--if-exists",
            f"--file={output_file}",
        ]
        return run_command(cmd, env=self.profile.libpq_env())


def client_tools_available() -> bool:
    """Return True when ``pg_dump`` is installed."""
    return shutil.which("pg_dump") is not None
