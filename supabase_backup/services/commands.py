"""Thin subprocess layer used by the database adapters.

Commands run synchronously. Their combined stdout/stderr is spooled to a
temporary file rather than a pipe, so input can be streamed into a process
without a reader thread and without deadlocking on a full pipe.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Mapping, Optional, Sequence, Tuple


logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one external tool invocation."""

    command: Tuple[str, ...]
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def lines(self) -> list[str]:
        return [line for line in self.output.splitlines() if line.strip()]

    def log_output(self, log: logging.Logger = logger, level: int = logging.INFO) -> None:
        """Append the tool output to the log, one record per line."""
        for line in self.lines():
            log.log(level, "  %s", line)


def run_command(
    cmd: Sequence[str],
    *,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    input_file: Optional[BinaryIO] = None,
    input_chunks: Optional[Iterable[bytes]] = None,
    stdout_file: Optional[BinaryIO] = None,
) -> ToolResult:
    """Run a command to completion.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        env: Environment for the child process.
        input_file: Open binary file connected to the child's stdin.
        input_chunks: Byte chunks written to the child's stdin.
        stdout_file: Open binary file receiving stdout; stderr is then captured
            on its own.

    Returns:
        ToolResult: Exit status and captured output. A missing executable is
        reported as exit status 127 rather than raised.
    """

    command = tuple(str(part) for part in cmd)
    logger.debug("Running: %s", " ".join(command))

    if input_file is not None:
        stdin = input_file
    elif input_chunks is not None:
        stdin = subprocess.PIPE
    else:
        stdin = subprocess.DEVNULL

    with tempfile.TemporaryFile() as captured:
        try:
            proc = subprocess.Popen(
                command,
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env is not None else None,
                stdin=stdin,
                stdout=stdout_file if stdout_file is not None else captured,
                stderr=captured if stdout_file is not None else subprocess.STDOUT,
            )
        except OSError as exc:
            logger.debug("Failed to start %s: %s", command[0], exc)
            return ToolResult(command=command, returncode=COMMAND_NOT_FOUND, output=str(exc))

        if input_chunks is not None:
            _feed(proc, input_chunks)

        returncode = proc.wait()
        captured.seek(0)
        output = captured.read().decode("utf-8", errors="replace")

    return ToolResult(command=command, returncode=returncode, output=output)


def _feed(proc: subprocess.Popen, chunks: Iterable[bytes]) -> None:
    assert proc.stdin is not None
    try:
        for chunk in chunks:
            proc.stdin.write(chunk)
    except BrokenPipeError:
        logger.warning("%s stopped reading its input early", proc.args[0])
    except BaseException:
        proc.kill()
        proc.wait()
        raise
    finally:
        try:
            proc.stdin.close()
        except BrokenPipeError:
            pass
