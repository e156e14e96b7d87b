"""Line based filter applied to plain SQL dumps before they are replayed.

Recent ``pg_dump`` releases wrap the script in ``\\restrict <key>`` /
``\\unrestrict <key>`` psql meta-commands that older psql builds inside the
Supabase image reject; those lines are dropped. In schema-only mode every
``COPY ... FROM stdin;`` block (through its ``\\.`` terminator) and every line
starting with ``INSERT INTO`` is dropped as well.

This is a line filter, not a SQL parser. ``INSERT`` statements spread over
several lines (for example string values with embedded newlines) are only
partially removed.
"""

from __future__ import annotations

import gzip
from pathlib import Path
from typing import Iterable, Iterator


_RESTRICT_MARKERS = (b"\\restrict", b"\\unrestrict")
_COPY_PREFIX = b"COPY "
_COPY_FROM_STDIN = b"FROM STDIN;"
_COPY_TERMINATOR = b"\\."
_INSERT_PREFIX = b"INSERT INTO"


def _is_restrict_marker(line: bytes) -> bool:
    stripped = line.lstrip()
    for marker in _RESTRICT_MARKERS:
        if stripped.startswith(marker):
            rest = stripped[len(marker):len(marker) + 1]
            if rest in (b"", b" ", b"\t", b"\n", b"\r"):
                return True
    return False


def _starts_copy_from_stdin(line: bytes) -> bool:
    return line.startswith(_COPY_PREFIX) and line.rstrip().upper().endswith(_COPY_FROM_STDIN)


def filter_sql_lines(lines: Iterable[bytes], *, schema_only: bool) -> Iterator[bytes]:
    """Filter the lines of a plain SQL dump.

    Args:
        lines: Raw lines, each including its line terminator.
        schema_only: Drop data-carrying COPY blocks and INSERT statements.

    Yields:
        bytes: Lines to send to psql.
    """

    in_copy_data = False
    for line in lines:
        if in_copy_data:
            if line.rstrip(b"\r\n") == _COPY_TERMINATOR:
                in_copy_data = False
                if schema_only:
                    continue
            elif schema_only:
                continue
            yield line
            continue

        if _starts_copy_from_stdin(line):
            in_copy_data = True
            if not schema_only:
                yield line
            continue

        if _is_restrict_marker(line):
            continue

        if schema_only and (line.startswith(_COPY_PREFIX) or line.startswith(_INSERT_PREFIX)):
            continue

        yield line


def read_sql_lines(path: Path, *, compressed: bool) -> Iterator[bytes]:
    """Yield the raw lines of a plain or gzip-compressed SQL file."""
    opener = gzip.open if compressed else open
    with opener(path, "rb") as f:
        yield from f
