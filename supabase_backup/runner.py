#!/usr/bin/env python3
"""Command-line entry points.

Commands:
    backup-from-cloud [--auto-restore]
        Download a Supabase Cloud database into the local backups directory,
        optionally restoring it into the local instance right away.
    restore-database <backup-file>
        Restore a .dump/.backup, .sql or .sql.gz file into the local instance.
    prune-backups [--keep N] [--prefix PREFIX] [--yes]
        Keep only the newest backups per prefix.

Usage:
    sudo backup-from-cloud --auto-restore
    sudo restore-database /srv/supabase/backups/cloud-backup-20250101-120000.sql.gz
    sudo supabase-backup restore-database /tmp/backup.dump
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from supabase_backup import __version__, console
from supabase_backup.logging_config import configure_logging, get_logger, invocation_log_filename
from supabase_backup.prompts import Prompter, TerminalPrompter
from supabase_backup.services.artifacts import RestoreMode, format_size
from supabase_backup.services.cloud_backup import CloudBackupProducer
from supabase_backup.services.compose_database import ComposeDatabase
from supabase_backup.services.errors import BackupRestoreError, ConfirmationDeclined
from supabase_backup.services.prerequisites import require_root
from supabase_backup.services.restore_engine import RestoreEngine, RestoreOutcome
from supabase_backup.services.retention import BACKUP_PREFIXES, prune_backups
from supabase_backup.settings import Settings, load_settings


logger = get_logger(__name__)

EXIT_INTERRUPTED = 130

EngineFactory = Callable[[Settings, Prompter], RestoreEngine]


def default_engine_factory(settings: Settings, prompter: Prompter) -> RestoreEngine:
    return RestoreEngine(settings, ComposeDatabase(settings.deployment_path), prompter)


def _start_logging(settings: Settings, command: str) -> Optional[Path]:
    log_path = configure_logging(
        log_dir=settings.LOG_DIR,
        log_filename=invocation_log_filename(command),
        log_level=settings.LOG_LEVEL,
        console_level=settings.LOG_CONSOLE_LEVEL,
    )
    logger.info("=== %s started (supabase-backup %s) ===", command, __version__)
    return log_path


def _guarded(action: Callable[[], int], log_path: Optional[Path]) -> int:
    """Run an action and map domain errors to exit codes."""
    try:
        code = action()
    except ConfirmationDeclined as exc:
        console.warning(str(exc))
        code = exc.exit_code
    except BackupRestoreError as exc:
        console.error(str(exc))
        code = exc.exit_code
    except KeyboardInterrupt:
        print()
        console.warning("Interrupted")
        code = EXIT_INTERRUPTED
    except EOFError:
        print()
        console.error("No input available (stdin is closed); run the command from an interactive terminal")
        code = 1
    except Exception as exc:
        logger.exception("Unexpected error")
        console.error(f"Unexpected error: {exc}")
        code = 1

    if log_path is not None:
        print(f"\nLog: {log_path}\n")
    logger.info("=== finished with exit code %s ===", code)
    return code


def report_restore(outcome: RestoreOutcome) -> None:
    console.banner("RESTORE COMPLETED", console.GREEN)
    console.success(f"Database restored from: {outcome.artifact.path}")
    if outcome.apply_warning:
        console.warning("pg_restore reported warnings; review the log for details")
    if outcome.safety_backup is not None:
        console.success(f"Safety backup saved to: {outcome.safety_backup.path}")
    print()
    console.info("Next steps:")
    console.detail("1. Verify your data is correct")
    console.detail("2. Check service status: docker compose ps")
    console.detail("3. View logs if needed: docker compose logs -f")
    if outcome.safety_backup is not None:
        print()
        console.info("If something went wrong, restore the safety backup:")
        console.command_hint(f"restore-database {outcome.safety_backup.path}")


# Commands

def run_restore_database(
    args: argparse.Namespace,
    settings: Settings,
    prompter: Prompter,
    *,
    engine_factory: EngineFactory = default_engine_factory,
) -> int:
    console.banner("SUPABASE DATABASE RESTORE UTILITY")
    engine = engine_factory(settings, prompter)
    outcome = engine.run(Path(args.backup_file))
    report_restore(outcome)
    return 0


def run_backup_from_cloud(
    args: argparse.Namespace,
    settings: Settings,
    prompter: Prompter,
    *,
    producer: Optional[CloudBackupProducer] = None,
    engine_factory: EngineFactory = default_engine_factory,
) -> int:
    console.banner("SUPABASE CLOUD BACKUP UTILITY")
    require_root(settings)
    if args.auto_restore:
        console.info("Auto-restore mode enabled")

    console.info("This command backs up your Supabase Cloud database")
    console.info("Use the direct connection details (port 5432, IPv4 add-on enabled), not the pooler")

    producer = producer or CloudBackupProducer(settings, prompter)
    artifact = producer.run()

    console.banner("BACKUP COMPLETED", console.GREEN)
    console.success(f"Backup saved to: {artifact.path}")
    console.success(f"Backup size: {format_size(artifact.size_bytes)}")
    console.success(f"Format: {artifact.format.label}")

    if args.auto_restore:
        console.info("Auto-restore mode: will restore to local instance")
        should_restore = True
    else:
        should_restore = prompter.confirm("Restore to local self-hosted instance now?", default=True)

    if not should_restore:
        console.info("To restore this backup later, run:")
        console.command_hint(f"restore-database {artifact.path}")
        return 0

    console.info("Starting restore to local instance...")
    engine = engine_factory(settings, prompter)
    mode = RestoreMode.FULL if args.auto_restore else None
    outcome = engine.run(artifact.path, mode=mode)
    report_restore(outcome)
    return 0


def run_prune_backups(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> int:
    keep = args.keep if args.keep is not None else settings.BACKUP_KEEP_LAST
    prefixes = [args.prefix] if args.prefix else list(BACKUP_PREFIXES)
    backups_dir = settings.backups_path

    candidates = prune_backups(backups_dir, keep_last=keep, prefixes=prefixes, dry_run=True)
    if not candidates:
        console.success(f"Nothing to prune in {backups_dir} (keeping {keep} per type)")
        return 0

    console.info(f"Backups to delete (keeping the newest {keep} per type):")
    for backup in candidates:
        console.detail(f"{backup.name} ({format_size(backup.size)})")

    if not args.yes and not prompter.confirm("Delete these backups?", default=False):
        raise ConfirmationDeclined("Pruning cancelled by user")

    deleted = prune_backups(backups_dir, keep_last=keep, prefixes=prefixes)
    console.success(f"Deleted {len(deleted)} backup(s)")
    return 0


# Argument parsing

def _add_backup_from_cloud_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--auto-restore",
        action="store_true",
        help="Restore the new backup into the local instance (full mode) without asking",
    )


def _add_restore_database_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("backup_file", help="Backup to restore (.dump, .backup, .sql or .sql.gz)")


def _add_prune_backups_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--keep", type=int, default=None, help="Backups to keep per type (default: BACKUP_KEEP_LAST)")
    parser.add_argument("--prefix", choices=list(BACKUP_PREFIXES), help="Only prune this type of backup")
    parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")


_COMMANDS = {
    "backup-from-cloud": (
        "Back up a Supabase Cloud database",
        _add_backup_from_cloud_arguments,
        run_backup_from_cloud,
    ),
    "restore-database": (
        "Restore a backup into the local Supabase database",
        _add_restore_database_arguments,
        run_restore_database,
    ),
    "prune-backups": (
        "Delete old backups, keeping the newest ones",
        _add_prune_backups_arguments,
        run_prune_backups,
    ),
}

_LOG_NAMES = {
    "backup-from-cloud": "backup-from-cloud",
    "restore-database": "restore",
    "prune-backups": "prune-backups",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="supabase-backup",
        description="Backup and restore tooling for self-hosted Supabase",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, (help_text, add_arguments, _) in _COMMANDS.items():
        add_arguments(subparsers.add_parser(name, help=help_text, description=help_text))
    return parser


def build_command_parser(command: str) -> argparse.ArgumentParser:
    help_text, add_arguments, _ = _COMMANDS[command]
    parser = argparse.ArgumentParser(prog=command, description=help_text)
    add_arguments(parser)
    return parser


def _dispatch(command: str, args: argparse.Namespace, prompter: Optional[Prompter] = None) -> int:
    settings = load_settings()
    log_path = _start_logging(settings, _LOG_NAMES[command])
    handler = _COMMANDS[command][2]
    prompter = prompter or TerminalPrompter()
    return _guarded(lambda: handler(args, settings, prompter), log_path)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return _dispatch(args.command, args)


def _command_main(command: str, argv: Optional[Sequence[str]]) -> int:
    args = build_command_parser(command).parse_args(argv)
    return _dispatch(command, args)


def backup_from_cloud_main(argv: Optional[List[str]] = None) -> int:
    return _command_main("backup-from-cloud", argv)


def restore_database_main(argv: Optional[List[str]] = None) -> int:
    return _command_main("restore-database", argv)


def prune_backups_main(argv: Optional[List[str]] = None) -> int:
    return _command_main("prune-backups", argv)


if __name__ == "__main__":
    sys.exit(main())
