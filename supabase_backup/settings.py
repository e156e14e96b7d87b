"""Runtime settings for the backup and restore commands.

Values are read from environment variables once per invocation and then
passed explicitly to every service. The local target database identity is
deliberately not part of the settings (see ``schemas.database_config``).
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DEPENDENT_SERVICES = ["auth", "rest", "storage", "meta", "realtime"]


class Settings(BaseSettings):
    """Filesystem locations, timeouts and policies for a Supabase deployment."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    DEPLOYMENT_DIR: str = "/srv/supabase"
    COMPOSE_FILE: str = "docker-compose.yml"
    # Defaults to <DEPLOYMENT_DIR>/backups when unset.
    BACKUP_DIR: Optional[str] = None
    LOG_DIR: str = "/srv/supabase/scripts"
    LOG_LEVEL: str = "INFO"
    # Also mirror log records to stderr at this level (e.g. DEBUG) when set.
    LOG_CONSOLE_LEVEL: Optional[str] = None
    CREDENTIALS_FILE: str = "/root/.supabase-cloud-credentials"

    REQUIRE_ROOT: bool = True
    SOURCE_CONNECT_TIMEOUT: int = 10

    READY_TIMEOUT_SECONDS: int = 30
    READY_POLL_INTERVAL_SECONDS: float = 1.0
    SERVICE_SETTLE_SECONDS: float = 5.0
    DEPENDENT_SERVICES: List[str] = Field(default_factory=lambda: list(DEFAULT_DEPENDENT_SERVICES))

    BACKUP_KEEP_LAST: int = 5

    @property
    def deployment_path(self) -> Path:
        return Path(self.DEPLOYMENT_DIR)

    @property
    def compose_file_path(self) -> Path:
        return self.deployment_path / self.COMPOSE_FILE

    @property
    def backups_path(self) -> Path:
        if self.BACKUP_DIR:
            return Path(self.BACKUP_DIR)
        return self.deployment_path / "backups"

    @property
    def log_path(self) -> Path:
        return Path(self.LOG_DIR)

    @property
    def credentials_path(self) -> Path:
        return Path(self.CREDENTIALS_FILE)


def load_settings(**overrides) -> Settings:
    """Load settings from the environment.

    Args:
        **overrides: Explicit values that take precedence over the environment.

    Returns:
        Settings: Loaded settings.
    """

    return Settings(**overrides)
