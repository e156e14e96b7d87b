import sys

from supabase_backup.services.commands import COMMAND_NOT_FOUND, run_command


def test_captures_combined_output_and_status():
    result = run_command(
        [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"]
    )

    assert result.returncode == 3
    assert not result.ok
    assert "out" in result.output
    assert "err" in result.output


def test_streams_input_chunks():
    script = "import sys; data = sys.stdin.buffer.read(); print(len(data))"
    chunks = (b"x" * 1000 for _ in range(500))

    result = run_command([sys.executable, "-c", script], input_chunks=chunks)

    assert result.ok
    assert result.lines() == ["500000"]


def test_child_that_stops_reading_does_not_raise():
    script = "import sys; sys.stdin.buffer.read(10); sys.exit(0)"
    chunks = (b"y" * 65536 for _ in range(200))

    result = run_command([sys.executable, "-c", script], input_chunks=chunks)

    assert result.ok


def test_stdout_file_receives_stdout_only(tmp_path):
    target = tmp_path / "out.bin"
    script = "import sys; sys.stdout.buffer.write(b'DATA'); sys.stderr.write('progress')"

    with open(target, "wb") as f:
        result = run_command([sys.executable, "-c", script], stdout_file=f)

    assert target.read_bytes() == b"DATA"
    assert result.output == "progress"


def test_missing_executable_is_reported_not_raised():
    result = run_command(["definitely-not-a-real-tool-xyz", "--version"])
    assert result.returncode == COMMAND_NOT_FOUND
