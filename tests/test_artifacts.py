from datetime import datetime

import pytest

from supabase_backup.services.artifacts import (
    BackupArtifact,
    BackupFormat,
    RestoreMode,
    format_size,
    timestamped_backup_path,
)


@pytest.mark.parametrize(
    "size, expected",
    [
        (0, "0B"),
        (512, "512B"),
        (1536, "1.5K"),
        (20 * 1024, "20K"),
        (12 * 1024 * 1024, "12M"),
        (3 * 1024 ** 3 + 1024 ** 3 // 2, "3.5G"),
    ],
)
def test_format_size(size, expected):
    assert format_size(size) == expected


def test_timestamped_backup_path(tmp_path):
    path = timestamped_backup_path(tmp_path, "pre-restore-", ".dump", now=datetime(2025, 3, 4, 5, 6, 7))
    assert path == tmp_path / "pre-restore-20250304-050607.dump"


def test_artifact_from_path(tmp_path):
    path = tmp_path / "a.sql"
    path.write_bytes(b"x" * 2048)

    artifact = BackupArtifact.from_path(path, BackupFormat.SQL)

    assert artifact.size_bytes == 2048
    assert artifact.human_size == "2.0K"
    assert artifact.contains_data is True


def test_restore_mode_flags():
    assert RestoreMode.SCHEMA_ONLY.schema_only is True
    assert RestoreMode.FULL.schema_only is False
    assert BackupFormat.SQL_GZ.label == "Compressed SQL (.sql.gz)"
