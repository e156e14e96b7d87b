"""Post-restore health check and dependent service restarts."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from supabase_backup import console
from supabase_backup.services.compose_database import ComposeDatabase
from supabase_backup.services.errors import VerificationError


logger = logging.getLogger(__name__)


class PostRestoreVerifier:
    """Wait for the target to accept connections, then restart its dependents."""

    def __init__(
        self,
        database: ComposeDatabase,
        *,
        timeout_seconds: int = 30,
        poll_interval: float = 1.0,
        dependent_services: Sequence[str] = (),
        settle_seconds: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.database = database
        self.timeout_seconds = timeout_seconds
        self.poll_interval = poll_interval
        self.dependent_services = list(dependent_services)
        self.settle_seconds = settle_seconds
        self._sleep = sleep

    def wait_until_ready(self) -> bool:
        """Poll ``pg_isready`` until it succeeds or the timeout elapses."""
        attempts = max(1, int(self.timeout_seconds / self.poll_interval)) if self.poll_interval > 0 else 1
        for attempt in range(1, attempts + 1):
            if self.database.is_ready():
                logger.info("Database ready after %d attempt(s)", attempt)
                return True
            if attempt < attempts:
                self._sleep(self.poll_interval)
        return False

    def verify(self, *, safety_backup: Optional[Path] = None) -> List[Tuple[str, int]]:
        """Confirm the database is ready and reachable.

        Args:
            safety_backup: Rollback artifact named in the failure message.

        Returns:
            List[Tuple[str, int]]: Table counts per schema (top five).

        Raises:
            VerificationError: On readiness timeout or failed connectivity query.
        """

        console.info("Verifying database health...")

        if not self.wait_until_ready():
            raise VerificationError(
                f"Database is not responding after {self.timeout_seconds}s",
                safety_backup=safety_backup,
            )
        if not self.database.check_connection():
            raise VerificationError("Database connectivity check failed", safety_backup=safety_backup)

        console.success("Database is healthy and accepting connections")
        stats = self.database.tables_by_schema()
        if stats:
            console.info("Database statistics (tables by schema):")
            for schema, count in stats:
                console.detail(f"{schema:<24} {count}")
        return stats

    def restart_dependents(self) -> List[str]:
        """Restart the dependent services that are part of the deployment.

        Failures are logged and do not stop the remaining restarts.

        Returns:
            List[str]: Services restarted successfully.
        """

        console.info("Restarting Supabase services...")
        present = set(self.database.running_services())
        restarted: List[str] = []
        for service in self.dependent_services:
            if service not in present:
                logger.info("Service %s not present; skipping restart", service)
                continue
            console.info(f"Restarting {service}...")
            result = self.database.restart(service)
            if result.ok:
                restarted.append(service)
            else:
                result.log_output(logger, logging.WARNING)
                logger.warning("Failed to restart %s (exit %s)", service, result.returncode)

        if self.settle_seconds > 0:
            self._sleep(self.settle_seconds)
        console.success("Services restarted")
        return restarted
