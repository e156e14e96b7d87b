"""Database connection configuration schemas."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict

from pydantic import BaseModel, Field, field_validator


_URL_SCHEMES = ("https://", "http://")


def normalize_host(host: str) -> str:
    """Strip whitespace, an accidental URL scheme and a trailing slash.

    Args:
        host: Host as typed by the operator.

    Returns:
        str: Bare host name.
    """

    value = str(host or "").strip()
    lowered = value.lower()
    for scheme in _URL_SCHEMES:
        if lowered.startswith(scheme):
            value = value[len(scheme):]
            break
    return value.rstrip("/")


class ConnectionProfile(BaseModel):
    """Connection parameters for the remote (Supabase Cloud) source database."""

    host: str = Field(..., description="Host name only, e.g. db.xxxxx.supabase.co")
    port: int = Field(5432, description="Database port (direct connection, not pooled)")
    database: str = Field("postgres", description="Database name")
    user: str = Field("postgres", description="Database username")
    password: str = Field(..., repr=False, description="Database password")

    @field_validator("host")
    @classmethod
    def _strip_scheme(cls, value: str) -> str:
        host = normalize_host(value)
        if not host:
            raise ValueError("Host cannot be empty")
        return host

    def libpq_env(self) -> Dict[str, str]:
        """Return a copy of the process environment carrying the password."""
        env = os.environ.copy()
        env["PGPASSWORD"] = self.password
        return env

    def describe(self) -> str:
        return f"host={self.host} port={self.port} db={self.database} user={self.user}"


@dataclass(frozen=True)
class TargetDatabase:
    """The local database inside the compose deployment.

    The identity is fixed so that a restore can never be pointed at another
    instance by accident.
    """

    service: str = "db"
    user: str = "postgres"
    database: str = "postgres"


LOCAL_TARGET = TargetDatabase()
