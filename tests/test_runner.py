import argparse
import logging

import pytest

from conftest import ScriptedPrompter
from supabase_backup import runner
from supabase_backup.services.artifacts import BackupArtifact, BackupFormat, RestoreMode
from supabase_backup.services.errors import ConfirmationDeclined, PrerequisiteError
from supabase_backup.services.restore_engine import RestoreOutcome


@pytest.fixture(autouse=True)
def environment(monkeypatch, tmp_path, deployment_dir):
    monkeypatch.setenv("DEPLOYMENT_DIR", str(deployment_dir))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("CREDENTIALS_FILE", str(tmp_path / "creds"))
    monkeypatch.setenv("REQUIRE_ROOT", "false")
    monkeypatch.setattr(runner, "configure_logging", lambda **kwargs: tmp_path / "logs" / kwargs["log_filename"])


class FakeProducer:
    def __init__(self, artifact):
        self.artifact = artifact

    def run(self):
        return self.artifact


class FakeEngine:
    def __init__(self):
        self.runs = []

    def run(self, artifact_path, *, mode=None):
        self.runs.append((artifact_path, mode))
        artifact = BackupArtifact.from_path(artifact_path, BackupFormat.SQL_GZ)
        return RestoreOutcome(artifact=artifact, mode=mode or RestoreMode.FULL, safety_backup=None)


@pytest.fixture
def cloud_artifact(settings):
    settings.backups_path.mkdir(parents=True)
    path = settings.backups_path / "cloud-backup-20250101-120000.sql.gz"
    path.write_bytes(b"\x1f\x8b compressed")
    return BackupArtifact.from_path(path, BackupFormat.SQL_GZ)


def _backup_from_cloud(settings, prompter, artifact, *, auto_restore):
    engine = FakeEngine()
    code = runner.run_backup_from_cloud(
        argparse.Namespace(auto_restore=auto_restore),
        settings,
        prompter,
        producer=FakeProducer(artifact),
        engine_factory=lambda s, p: engine,
    )
    return code, engine


def test_restore_missing_file_exits_1_without_side_effects(settings, tmp_path, capsys):
    code = runner.main(["restore-database", str(tmp_path / "missing.dump")])

    assert code == 1
    assert "Backup file not found" in capsys.readouterr().err
    assert not settings.backups_path.exists()


def test_restore_database_entry_point_requires_path():
    with pytest.raises(SystemExit) as exc_info:
        runner.restore_database_main([])
    assert exc_info.value.code == 2


def test_unknown_command_is_usage_error():
    with pytest.raises(SystemExit) as exc_info:
        runner.main(["explode"])
    assert exc_info.value.code == 2


def test_auto_restore_chains_full_restore_without_asking(settings, cloud_artifact):
    prompter = ScriptedPrompter()

    code, engine = _backup_from_cloud(settings, prompter, cloud_artifact, auto_restore=True)

    assert code == 0
    assert engine.runs == [(cloud_artifact.path, RestoreMode.FULL)]
    assert "Restore to local self-hosted instance now?" not in prompter.asked


def test_interactive_backup_asks_before_restoring(settings, cloud_artifact):
    prompter = ScriptedPrompter()

    code, engine = _backup_from_cloud(settings, prompter, cloud_artifact, auto_restore=False)

    assert code == 0
    assert engine.runs == [(cloud_artifact.path, None)]
    assert prompter.asked == ["Restore to local self-hosted instance now?"]


def test_declining_restore_prints_hint(settings, cloud_artifact, capsys):
    prompter = ScriptedPrompter({"Restore to local self-hosted instance now?": False})

    code, engine = _backup_from_cloud(settings, prompter, cloud_artifact, auto_restore=False)

    assert code == 0
    assert engine.runs == []
    assert f"restore-database {cloud_artifact.path}" in capsys.readouterr().out


def test_guarded_maps_errors_to_exit_codes(tmp_path):
    def declined():
        raise ConfirmationDeclined("Restore cancelled by user")

    def declined_at_safety_gate():
        raise ConfirmationDeclined("no safety backup", exit_code=1)

    def prerequisite():
        raise PrerequisiteError("Docker is not installed")

    def interrupted():
        raise KeyboardInterrupt

    assert runner._guarded(lambda: 0, None) == 0
    assert runner._guarded(declined, None) == 0
    assert runner._guarded(declined_at_safety_gate, None) == 1
    assert runner._guarded(prerequisite, None) == 1
    assert runner._guarded(interrupted, None) == runner.EXIT_INTERRUPTED


def test_guarded_prints_log_location(tmp_path, capsys):
    runner._guarded(lambda: 0, tmp_path / "restore-20250101-120000.log")
    assert "Log: " in capsys.readouterr().out


def test_prune_backups_command(settings):
    settings.backups_path.mkdir(parents=True)
    for day in range(1, 5):
        (settings.backups_path / f"pre-restore-2025010{day}-000000.dump").write_bytes(b"PGDMP")

    code = runner.prune_backups_main(["--keep", "2", "--yes"])

    assert code == 0
    assert sorted(p.name for p in settings.backups_path.iterdir()) == [
        "pre-restore-20250103-000000.dump",
        "pre-restore-20250104-000000.dump",
    ]


def test_prune_backups_nothing_to_do(settings):
    assert runner.main(["prune-backups", "--yes"]) == 0


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc_info:
        runner.main(["--version"])
    assert exc_info.value.code == 0
    assert "supabase-backup" in capsys.readouterr().out


def test_closed_stdin_is_an_error_not_an_interrupt(capsys):
    def no_input():
        raise EOFError

    assert runner._guarded(no_input, None) == 1
    assert "No input available" in capsys.readouterr().err


def test_unexpected_exception_is_logged_and_exits_1(caplog, capsys):
    def crash():
        raise RuntimeError("disk on fire")

    with caplog.at_level(logging.ERROR, logger="supabase_backup.runner"):
        code = runner._guarded(crash, None)

    assert code == 1
    assert "Unexpected error: disk on fire" in capsys.readouterr().err
    record = next(r for r in caplog.records if r.name == "supabase_backup.runner")
    assert record.exc_info is not None
    assert isinstance(record.exc_info[1], RuntimeError)


def test_console_log_level_setting_is_passed_to_logging(monkeypatch, tmp_path):
    received = {}

    def record_configure(**kwargs):
        received.update(kwargs)
        return None

    monkeypatch.setenv("LOG_CONSOLE_LEVEL", "DEBUG")
    monkeypatch.setattr(runner, "configure_logging", record_configure)

    runner.main(["prune-backups", "--yes"])

    assert received["console_level"] == "DEBUG"
