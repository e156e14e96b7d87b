"""Persisted Supabase Cloud connection details.

The credential file holds shell-style ``KEY=value`` lines (values quoted with
``shlex.quote``) so that it stays readable and ``source``-able from a shell.
It is created with owner-only permissions.
"""

from __future__ import annotations

import logging
import os
import shlex
from datetime import datetime
from pathlib import Path
from typing import Dict, Mapping, Optional

from pydantic import ValidationError

from supabase_backup.schemas.database_config import ConnectionProfile


logger = logging.getLogger(__name__)

HOST_KEY = "SUPABASE_CLOUD_HOST"
PORT_KEY = "SUPABASE_CLOUD_PORT"
DB_KEY = "SUPABASE_CLOUD_DB"
USER_KEY = "SUPABASE_CLOUD_USER"
PASSWORD_KEY = "SUPABASE_CLOUD_PASS"


def parse_env_lines(text: str) -> Dict[str, str]:
    """Parse shell-style ``KEY=value`` lines into a mapping.

    Blank lines, comments, ``export`` prefixes and malformed lines are
    tolerated; later keys win.

    Args:
        text: File content.

    Returns:
        Dict[str, str]: Parsed values.
    """

    values: Dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, raw_value = line.partition("=")
        key = key.strip()
        if not sep or not key.isidentifier():
            continue
        try:
            parts = shlex.split(raw_value, comments=False, posix=True)
        except ValueError:
            logger.warning("Ignoring unparsable credential line for %s", key)
            continue
        values[key] = " ".join(parts)
    return values


def profile_from_mapping(values: Mapping[str, str]) -> Optional[ConnectionProfile]:
    """Build a source profile from a loaded credential mapping.

    Args:
        values: Mapping as returned by ``parse_env_lines``.

    Returns:
        Optional[ConnectionProfile]: Profile, or None when the host is missing
        or the values are invalid.
    """

    if not values.get(HOST_KEY):
        return None
    try:
        return ConnectionProfile(
            host=values[HOST_KEY],
            port=int(values.get(PORT_KEY) or 5432),
            database=values.get(DB_KEY) or "postgres",
            user=values.get(USER_KEY) or "postgres",
            password=values.get(PASSWORD_KEY, ""),
        )
    except (ValueError, ValidationError) as exc:
        logger.warning("Saved credentials are invalid and will be ignored: %s", exc)
        return None


class CredentialStore:
    """Load and save the source connection profile."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[ConnectionProfile]:
        """Return the saved profile, or None when there is none."""
        if not self.path.is_file():
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Cannot read credential file %s: %s", self.path, exc)
            return None
        return profile_from_mapping(parse_env_lines(text))

    def save(self, profile: ConnectionProfile) -> Path:
        """Write the profile with mode 0600, replacing any previous file.

        Args:
            profile: Profile to persist.

        Returns:
            Path: The credential file.
        """

        lines = [
            "# Supabase Cloud Credentials",
            f"# Created: {datetime.now().isoformat(timespec='seconds')}",
            f"{HOST_KEY}={shlex.quote(profile.host)}",
            f"{PORT_KEY}={shlex.quote(str(profile.port))}",
            f"{DB_KEY}={shlex.quote(profile.database)}",
            f"{USER_KEY}={shlex.quote(profile.user)}",
            f"{PASSWORD_KEY}={shlex.quote(profile.password)}",
        ]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        os.chmod(self.path, 0o600)
        logger.info("Credentials saved to %s", self.path)
        return self.path
