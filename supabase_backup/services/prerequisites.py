"""Environment checks shared by the backup and restore commands."""

from __future__ import annotations

import os

from supabase_backup.services.compose_database import ComposeDatabase
from supabase_backup.services.errors import PrerequisiteError
from supabase_backup.settings import Settings


def require_root(settings: Settings) -> None:
    """Refuse to run without root privileges unless disabled in settings."""
    if not settings.REQUIRE_ROOT:
        return
    geteuid = getattr(os, "geteuid", None)
    if geteuid is not None and geteuid() != 0:
        raise PrerequisiteError("This command must be run as root (use sudo)")


def check_deployment(settings: Settings, database: ComposeDatabase) -> None:
    """Verify Docker Compose is usable and the Supabase deployment exists.

    Raises:
        PrerequisiteError: With an actionable message for the first missing piece.
    """

    if not database.compose_available():
        raise PrerequisiteError("Docker with the Compose plugin is not installed or not working")
    if not settings.deployment_path.is_dir():
        raise PrerequisiteError(
            f"Supabase installation not found at {settings.deployment_path}; please install Supabase first"
        )
    if not settings.compose_file_path.is_file():
        raise PrerequisiteError(f"{settings.COMPOSE_FILE} not found in {settings.deployment_path}")
