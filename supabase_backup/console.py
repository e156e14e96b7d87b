"""Operator-facing terminal output.

Every message is printed with a status marker and mirrored into the
invocation log, so the log file tells the same story as the terminal.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO


logger = logging.getLogger("supabase_backup")

CYAN = "\033[1;36m"
GREEN = "\033[1;32m"
YELLOW = "\033[1;33m"
RED = "\033[1;31m"
WHITE = "\033[1;37m"
RESET = "\033[0m"

_BOX_WIDTH = 64


def _use_color(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _paint(text: str, color: str, stream: TextIO) -> str:
    if not _use_color(stream):
        return text
    return f"{color}{text}{RESET}"


def _emit(marker: str, color: str, message: str, stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stdout
    print(f"{_paint(marker, color, stream)} {message}", file=stream, flush=True)


def info(message: str) -> None:
    _emit("◉", CYAN, message)
    logger.info(message)


def success(message: str) -> None:
    _emit("✓", GREEN, message)
    logger.info(message)


def warning(message: str) -> None:
    _emit("⚠", YELLOW, message)
    logger.warning(message)


def error(message: str) -> None:
    _emit("✗", RED, message, sys.stderr)
    logger.error(message)


def detail(message: str = "") -> None:
    """Print an indented line without a marker; logged at DEBUG."""
    print(f"  {message}" if message else "", flush=True)
    if message:
        logger.debug(message)


def command_hint(command: str) -> None:
    print(f"  {_paint(command, CYAN, sys.stdout)}", flush=True)
    logger.info("Hint: %s", command)


def banner(title: str, color: str = CYAN) -> None:
    """Print a boxed title line."""
    inner = f" {title}".ljust(_BOX_WIDTH)
    lines = [
        "╔" + "═" * _BOX_WIDTH + "╗",
        "║" + inner + "║",
        "╚" + "═" * _BOX_WIDTH + "╝",
    ]
    for line in lines:
        print(_paint(line, color, sys.stdout))
    print(flush=True)
    logger.info("=== %s ===", title)
