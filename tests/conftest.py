"""Shared fixtures for the backup and restore tests."""

import sys
import textwrap
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from supabase_backup.prompts import Prompter
from supabase_backup.services.artifacts import RestoreMode
from supabase_backup.services.commands import ToolResult
from supabase_backup.settings import Settings


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def deployment_dir(tmp_path):
    """A minimal Supabase deployment tree."""
    path = tmp_path / "srv" / "supabase"
    path.mkdir(parents=True)
    (path / "docker-compose.yml").write_text("services: {}\n")
    return path


@pytest.fixture
def settings(tmp_path, deployment_dir):
    return Settings(
        DEPLOYMENT_DIR=str(deployment_dir),
        LOG_DIR=str(tmp_path / "logs"),
        CREDENTIALS_FILE=str(tmp_path / "home" / ".supabase-cloud-credentials"),
        REQUIRE_ROOT=False,
        READY_TIMEOUT_SECONDS=3,
        READY_POLL_INTERVAL_SECONDS=1.0,
        SERVICE_SETTLE_SECONDS=0,
    )


# =============================================================================
# Prompter
# =============================================================================


class ScriptedPrompter(Prompter):
    """Prompter answering from pre-recorded answers.

    ``answers`` maps a question to its answer; unknown questions get the
    default answer. Every question asked is recorded in ``asked``.
    """

    def __init__(self, answers: Optional[Dict[str, Any]] = None, mode: Optional[RestoreMode] = None):
        self.answers = dict(answers or {})
        self.mode = mode
        self.asked: List[str] = []

    def _answer(self, question: str, default):
        self.asked.append(question)
        value = self.answers.get(question, default)
        if isinstance(value, list):
            return value.pop(0) if value else default
        return value

    def ask(self, question: str, default: str = "") -> str:
        return self._answer(question, default)

    def ask_secret(self, question: str) -> str:
        return self._answer(question, "")

    def confirm(self, question: str, default: bool) -> bool:
        return self._answer(question, default)

    def choose_restore_mode(self) -> RestoreMode:
        self.asked.append("restore mode")
        if self.mode is None:
            raise AssertionError("restore mode was not expected to be asked")
        return self.mode


@pytest.fixture
def prompter():
    return ScriptedPrompter()


# =============================================================================
# Fake target database
# =============================================================================


class FakeComposeDatabase:
    """In-memory stand-in for ComposeDatabase recording every call."""

    def __init__(self):
        self.compose_ok = True
        self.healthy = True
        self.ready_after = 1
        self.connection_ok = True
        self.dump_returncode = 0
        self.restore_returncode = 0
        self.sql_returncode = 0
        self.services = ["db", "auth", "rest", "storage", "meta", "realtime", "kong"]
        self.failing_restarts = set()
        self.stats = [("public", 3), ("auth", 2)]
        self.calls: List[str] = []
        self.sql_received = b""
        self.restore_args: Dict[str, Any] = {}
        self._ready_checks = 0

    def _result(self, name, returncode=0, output=""):
        return ToolResult(command=(name,), returncode=returncode, output=output)

    def compose_available(self):
        self.calls.append("compose_available")
        return self.compose_ok

    def is_healthy(self):
        self.calls.append("is_healthy")
        return self.healthy

    def is_ready(self):
        self.calls.append("is_ready")
        self._ready_checks += 1
        return self.ready_after is not None and self._ready_checks >= self.ready_after

    def check_connection(self):
        self.calls.append("check_connection")
        return self.connection_ok

    def tables_by_schema(self):
        self.calls.append("tables_by_schema")
        return list(self.stats)

    def running_services(self):
        self.calls.append("running_services")
        return list(self.services)

    def restart(self, service):
        self.calls.append(f"restart:{service}")
        return self._result("restart", 1 if service in self.failing_restarts else 0)

    def dump_custom(self, destination):
        self.calls.append("dump_custom")
        if self.dump_returncode == 0:
            destination.write(b"PGDMP\x01\x0e\x00fake snapshot")
        else:
            destination.write(b"partial")
        return self._result("pg_dump", self.dump_returncode, "pg_dump: error" if self.dump_returncode else "")

    def restore_custom(self, artifact, *, schema_only):
        self.calls.append("restore_custom")
        self.restore_args = {"artifact": Path(artifact), "schema_only": schema_only}
        output = "pg_restore: warning: errors ignored on restore: 2" if self.restore_returncode else ""
        return self._result("pg_restore", self.restore_returncode, output)

    def run_sql(self, lines):
        self.calls.append("run_sql")
        self.sql_received = b"".join(lines)
        return self._result("psql", self.sql_returncode)


@pytest.fixture
def fake_db():
    return FakeComposeDatabase()


# =============================================================================
# Fake `docker compose` executable
# =============================================================================


FAKE_COMPOSE_SCRIPT = textwrap.dedent(
    '''
    import json
    import os
    import sys

    state = os.environ["FAKE_COMPOSE_STATE"]
    args = sys.argv[1:]
    with open(os.path.join(state, "calls.jsonl"), "a") as f:
        f.write(json.dumps(args) + "\\n")

    def code(name, default=0):
        return int(os.environ.get("FAKE_EXIT_" + name.upper().replace("-", "_"), default))

    if args[:1] == ["version"]:
        print("Docker Compose version v2.29.0")
        sys.exit(code("version"))

    if args[:2] == ["ps", "--services"]:
        print(os.environ.get("FAKE_SERVICES", "db\\nauth\\nrest").replace(",", "\\n"))
        sys.exit(code("ps"))

    if args[:1] == ["ps"]:
        print("NAME          IMAGE              SERVICE   STATUS")
        print("supabase-db   supabase/postgres  db        " + os.environ.get("FAKE_DB_STATUS", "Up 5 minutes (healthy)"))
        sys.exit(code("ps"))

    if args[:1] == ["restart"]:
        sys.exit(code("restart"))

    if args[:3] == ["exec", "-T", "db"]:
        tool = args[3]
        if tool == "pg_dump":
            sys.stdout.buffer.write(b"PGDMP\\x01\\x0e\\x00snapshot")
            sys.stderr.write("pg_dump: dumping contents\\n")
        elif tool in ("pg_restore", "psql") and "-c" not in args:
            data = sys.stdin.buffer.read()
            with open(os.path.join(state, tool + ".stdin"), "wb") as f:
                f.write(data)
            print(tool + " received %d bytes" % len(data))
        elif tool == "psql":
            print(os.environ.get("FAKE_QUERY_OUTPUT", "public|3\\nauth|2"))
        sys.exit(code(tool))

    sys.exit(0)
    '''
)


@pytest.fixture
def fake_compose(tmp_path, monkeypatch):
    """Return a compose command running a recording fake of ``docker compose``."""
    state = tmp_path / "compose-state"
    state.mkdir()
    script = tmp_path / "fake_compose.py"
    script.write_text(FAKE_COMPOSE_SCRIPT)
    monkeypatch.setenv("FAKE_COMPOSE_STATE", str(state))
    return (sys.executable, str(script)), state
