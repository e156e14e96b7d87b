"""Access to the local database running inside the Docker Compose deployment.

All tools run inside the ``db`` container through ``docker compose exec -T``,
so the host needs no PostgreSQL client and the target can only ever be the
deployment's own database.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Iterable, List, Sequence, Tuple

from supabase_backup.schemas.database_config import LOCAL_TARGET, TargetDatabase
from supabase_backup.services.commands import ToolResult, run_command
from supabase_backup.services.source_database import TABLES_BY_SCHEMA_SQL


logger = logging.getLogger(__name__)

DEFAULT_COMPOSE_COMMAND = ("docker", "compose")
_HEALTHY_MARKERS = ("healthy", "Up", "running")


class ComposeDatabase:
    """Adapter around ``docker compose`` for the deployment's database service."""

    def __init__(
        self,
        deployment_dir: Path,
        *,
        target: TargetDatabase = LOCAL_TARGET,
        compose_command: Sequence[str] = DEFAULT_COMPOSE_COMMAND,
    ):
        self.deployment_dir = Path(deployment_dir)
        self.target = target
        self.compose_command = tuple(compose_command)

    def _compose(self, *args: str, **kwargs) -> ToolResult:
        return run_command([*self.compose_command, *args], cwd=self.deployment_dir, **kwargs)

    def _exec(self, *args: str, **kwargs) -> ToolResult:
        return self._compose("exec", "-T", self.target.service, *args, **kwargs)

    def _psql_base(self) -> List[str]:
        return ["psql", "-U", self.target.user, "-d", self.target.database]

    # Platform

    def compose_available(self) -> bool:
        """Return True when the compose CLI is installed and answers ``version``."""
        if shutil.which(self.compose_command[0]) is None:
            return False
        return self._compose("version").ok

    def service_status(self) -> str:
        result = self._compose("ps", self.target.service)
        return result.output if result.ok else ""

    def is_healthy(self) -> bool:
        """Return True when ``docker compose ps`` reports the db as up/healthy."""
        status = self.service_status()
        for line in status.splitlines():
            if self.target.service not in line:
                continue
            if any(marker in line for marker in _HEALTHY_MARKERS) and "unhealthy" not in line:
                return True
        return False

    def running_services(self) -> List[str]:
        result = self._compose("ps", "--services")
        if not result.ok:
            logger.warning("Unable to list compose services: %s", result.output.strip())
            return []
        return result.lines()

    def restart(self, service: str) -> ToolResult:
        return self._compose("restart", service)

    # Database

    def is_ready(self) -> bool:
        """Return True when ``pg_isready`` succeeds inside the container."""
        return self._exec("pg_isready", "-U", self.target.user).ok

    def query(self, sql: str) -> ToolResult:
        """Run a statement with unaligned, tuples-only output."""
        return self._exec(*self._psql_base(), "-At", "-F", "|", "-c", sql)

    def check_connection(self) -> bool:
        return self.query("SELECT 1;").ok

    def tables_by_schema(self) -> List[Tuple[str, int]]:
        result = self.query(TABLES_BY_SCHEMA_SQL)
        if not result.ok:
            logger.warning("Unable to get table info: %s", result.output.strip())
            return []
        rows: List[Tuple[str, int]] = []
        for line in result.lines():
            schema, _, count = line.partition("|")
            try:
                rows.append((schema, int(count)))
            except ValueError:
                continue
        return rows

    def dump_custom(self, destination: BinaryIO) -> ToolResult:
        """Write a ``pg_dump -Fc`` snapshot of the database to ``destination``."""
        return self._exec(
            "pg_dump", "-U", self.target.user, "-Fc", "-d", self.target.database,
            stdout_file=destination,
        )

    def restore_custom(self, artifact: Path, *, schema_only: bool) -> ToolResult:
        """Feed a custom-format dump into ``pg_restore``."""
        cmd = [
            "pg_restore", "-U", self.target.user, "-d", self.target.database,
            "--clean", "--if-exists", "--no-owner", "--no-acl",
        ]
        if schema_only:
            cmd.append("--schema-only")
        with open(artifact, "rb") as f:
            return self._exec(*cmd, input_file=f)

    def run_sql(self, lines: Iterable[bytes]) -> ToolResult:
        """Stream SQL into ``psql`` without stopping at statement errors."""
        return self._exec(*self._psql_base(), "-v", "ON_ERROR_STOP=off", input_chunks=lines)
