"""Logging configuration for the backup and restore commands.

Every invocation writes its own log file, named after the command and the
start time (e.g. ``restore-20250101-120000.log``), plus an error-only
companion file next to it. Terminal output is produced by ``console`` and is
mirrored into these files, so no console handler is installed by default.

The configuration is safe to call multiple times.
"""

from __future__ import annotations

import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def invocation_log_filename(command: str, *, now: Optional[datetime] = None) -> str:
    """Return the per-invocation log file name for a command.

    Args:
        command: Command name, e.g. ``restore`` or ``backup-from-cloud``.
        now: Override current time.

    Returns:
        str: File name such as ``restore-20250101-120000.log``.
    """

    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"{command}-{stamp}.log"


def configure_logging(
    *,
    log_dir: str,
    log_filename: str,
    log_level: str = "INFO",
    console_level: Optional[str] = None,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 3,
) -> Optional[Path]:
    """Configure application-wide logging.

    Args:
        log_dir: Directory where log files are stored.
        log_filename: Log file name (within log_dir).
        log_level: Root log level name (e.g. INFO, DEBUG).
        console_level: When set, also log to stderr at this level.
        max_bytes: Rotate the log file after this size.
        backup_count: Number of rotated files to keep.

    Returns:
        Optional[Path]: Path of the log file, or None when file logging could
        not be set up (or logging was already configured).

    Raises:
        ValueError: When the provided log level is invalid.
    """

    root = logging.getLogger()
    if getattr(root, "_supabase_backup_logging_configured", False):
        return getattr(root, "_supabase_backup_log_path", None)

    resolved_level = _resolve_level(log_level)
    root.setLevel(resolved_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if console_level:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(_resolve_level(console_level))
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    log_filename_path = Path(log_filename)
    error_filename = f"{log_filename_path.stem}.error{log_filename_path.suffix or '.log'}"

    log_path: Optional[Path] = Path(log_dir) / log_filename
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(resolved_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

        error_file_handler = RotatingFileHandler(
            filename=str(Path(log_dir) / error_filename),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
            delay=True,
        )
        error_file_handler.setLevel(logging.ERROR)
        error_file_handler.setFormatter(formatter)
        root.addHandler(error_file_handler)
    except OSError:
        log_path = None
        if not console_level:
            fallback = logging.StreamHandler()
            fallback.setLevel(logging.WARNING)
            fallback.setFormatter(formatter)
            root.addHandler(fallback)
        logging.getLogger(__name__).warning(
            "Failed to configure file logging under %s; continuing with console-only logging",
            log_dir,
        )

    logging.captureWarnings(True)
    root._supabase_backup_logging_configured = True  # type: ignore[attr-defined]
    root._supabase_backup_log_path = log_path  # type: ignore[attr-defined]
    return log_path


def _resolve_level(level_name: str) -> int:
    name = str(level_name or "").strip().upper() or "INFO"
    level = getattr(logging, name, None)
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {level_name}")
    return level


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger instance.

    Args:
        name: Logger name.

    Returns:
        logging.Logger: Logger instance.
    """

    return logging.getLogger(name or __name__)
