from supabase_backup.schemas.database_config import (
    LOCAL_TARGET,
    ConnectionProfile,
    TargetDatabase,
    normalize_host,
)

__all__ = ["LOCAL_TARGET", "ConnectionProfile", "TargetDatabase", "normalize_host"]
