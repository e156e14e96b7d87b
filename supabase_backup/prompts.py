"""Interactive prompts.

Parsing answers (``parse_yes_no``, ``parse_restore_choice``) is kept apart
from asking for them (``Prompter``), so the services can be driven by any
object with the ``Prompter`` interface, including pre-recorded answers.
"""

from __future__ import annotations

import getpass
from abc import ABC, abstractmethod
from typing import Optional

from supabase_backup import console
from supabase_backup.services.artifacts import RestoreMode


_YES = {"y", "yes"}
_NO = {"n", "no"}


def parse_yes_no(answer: Optional[str], default: bool) -> Optional[bool]:
    """Interpret a yes/no answer.

    Args:
        answer: Raw input; empty means the default.
        default: Value used for an empty answer.

    Returns:
        Optional[bool]: True/False, or None when the answer is not understood.
    """

    value = str(answer or "").strip().lower()
    if not value:
        return default
    if value in _YES:
        return True
    if value in _NO:
        return False
    return None


def parse_restore_choice(answer: Optional[str]) -> Optional[RestoreMode]:
    """Interpret the restore mode menu answer (``1`` schema only, ``2`` full)."""
    value = str(answer or "").strip()
    if value == "1":
        return RestoreMode.SCHEMA_ONLY
    if value == "2":
        return RestoreMode.FULL
    return None


class Prompter(ABC):
    """Source of operator answers."""

    @abstractmethod
    def ask(self, question: str, default: str = "") -> str:
        """Ask for a free-text value; an empty answer returns ``default``."""

    @abstractmethod
    def ask_secret(self, question: str) -> str:
        """Ask for a value without echoing it."""

    @abstractmethod
    def confirm(self, question: str, default: bool) -> bool:
        """Ask a yes/no question."""

    @abstractmethod
    def choose_restore_mode(self) -> RestoreMode:
        """Ask whether to restore the schema only or schema and data."""


class TerminalPrompter(Prompter):
    """Prompter reading from the controlling terminal."""

    def __init__(self, input_func=input, secret_func=getpass.getpass):
        self._input = input_func
        self._secret = secret_func

    def ask(self, question: str, default: str = "") -> str:
        suffix = f" [{default}]" if default else ""
        answer = self._input(f"{question}{suffix}: ").strip()
        return answer or default

    def ask_secret(self, question: str) -> str:
        return self._secret(f"{question}: ")

    def confirm(self, question: str, default: bool) -> bool:
        hint = "Y/n" if default else "y/N"
        while True:
            decision = parse_yes_no(self._input(f"{question} [{hint}]: "), default)
            if decision is not None:
                return decision
            console.warning("Please enter y or n")

    def choose_restore_mode(self) -> RestoreMode:
        console.info("What would you like to restore?")
        print()
        print("1) Schema only (structure: tables, functions, policies - NO data)")
        print("   ├─ Best for: Fresh start with existing structure")
        print("   └─ Result: Empty tables, all functions/policies in place")
        print()
        print("2) Schema + Data (complete restore)")
        print("   ├─ Best for: Full migration from Supabase Cloud")
        print("   └─ Result: Exact copy of source database")
        print()
        while True:
            mode = parse_restore_choice(self._input("Choose [1 or 2]: "))
            if mode is not None:
                return mode
            console.warning("Please enter 1 or 2")
