import gzip

import pytest

from supabase_backup.services.artifacts import BackupFormat
from supabase_backup.services.format_detection import (
    detect_backup_format,
    format_from_content,
    format_from_name,
)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("cloud-backup-20250101-120000.sql.gz", BackupFormat.SQL_GZ),
        ("BACKUP.SQL.GZ", BackupFormat.SQL_GZ),
        ("schema.sql", BackupFormat.SQL),
        ("pre-restore-20250101-120000.dump", BackupFormat.CUSTOM),
        ("nightly.backup", BackupFormat.CUSTOM),
        ("archive.tar", None),
        ("noext", None),
    ],
)
def test_format_from_name(name, expected):
    assert format_from_name(name) is expected


def test_format_from_content_recognises_magic_bytes():
    assert format_from_content(b"\x1f\x8b\x08\x00rest") is BackupFormat.SQL_GZ
    assert format_from_content(b"PGDMP\x01\x0e\x00") is BackupFormat.CUSTOM


def test_format_from_content_treats_text_as_sql():
    assert format_from_content(b"--\n-- PostgreSQL database dump\n--\nSET statement_timeout = 0;\n") is BackupFormat.SQL


def test_format_from_content_tolerates_multibyte_char_cut_at_boundary():
    head = "CREATE TABLE café".encode("utf-8")[:-1]
    assert format_from_content(head) is BackupFormat.SQL


@pytest.mark.parametrize("head", [b"", b"\x00\x01\x02binary", b"\xff\xfe\xfa\xfb" * 10])
def test_format_from_content_defaults_to_custom(head):
    assert format_from_content(head) is BackupFormat.CUSTOM


def test_detect_missing_file(tmp_path):
    assert detect_backup_format(tmp_path / "missing.dump") is BackupFormat.NOT_FOUND


def test_detect_directory_is_not_found(tmp_path):
    assert detect_backup_format(tmp_path) is BackupFormat.NOT_FOUND


def test_detect_extension_wins_over_content(tmp_path):
    # Plain text but named .dump: the name decides.
    path = tmp_path / "mislabelled.dump"
    path.write_text("SELECT 1;\n")
    assert detect_backup_format(path) is BackupFormat.CUSTOM


def test_detect_sniffs_content_without_known_extension(tmp_path):
    gz = tmp_path / "download.bin"
    with gzip.open(gz, "wb") as f:
        f.write(b"SELECT 1;\n")
    plain = tmp_path / "export.txt"
    plain.write_text("CREATE TABLE t (id int);\n")
    custom = tmp_path / "snapshot"
    custom.write_bytes(b"PGDMP\x01\x0e\x00\x04\x08")

    assert detect_backup_format(gz) is BackupFormat.SQL_GZ
    assert detect_backup_format(plain) is BackupFormat.SQL
    assert detect_backup_format(custom) is BackupFormat.CUSTOM


def test_detect_empty_file_without_extension_is_custom(tmp_path):
    path = tmp_path / "empty"
    path.write_bytes(b"")
    assert detect_backup_format(path) is BackupFormat.CUSTOM
