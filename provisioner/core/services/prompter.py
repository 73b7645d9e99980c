"""
Prompter — how the core asks the operator something.

The core only depends on this interface.  ``AutoPrompter`` answers
every question with its default and never touches stdin, which is what
makes automated and quick runs non-interactive end-to-end.  The
terminal implementation lives in ``provisioner.ui.cli.prompts``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from provisioner.core.errors import PreconditionError


class Prompter(ABC):
    @property
    @abstractmethod
    def interactive(self) -> bool:
        """True when questions reach a human."""

    @abstractmethod
    def confirm(self, question: str, default: bool) -> bool:
        """Yes/no question."""

    @abstractmethod
    def ask(self, question: str, default: str) -> str:
        """Free-text question; an empty answer means ``default``."""

    @abstractmethod
    def ask_secret(self, question: str) -> str:
        """Hidden input, entered twice for confirmation."""

    @abstractmethod
    def choose(self, question: str, options: list[str], default: int = 0) -> int:
        """Pick one of ``options``; returns its index."""


class AutoPrompter(Prompter):
    """Every gate passes, every prompt returns its default."""

    def __init__(self, assume_yes: bool = True):
        self._assume_yes = assume_yes
        self.asked: list[str] = []

    @property
    def interactive(self) -> bool:
        return False

    def confirm(self, question: str, default: bool) -> bool:
        self.asked.append(question)
        return True if self._assume_yes else default

    def ask(self, question: str, default: str) -> str:
        self.asked.append(question)
        return default

    def ask_secret(self, question: str) -> str:
        raise PreconditionError(f"Operator input required in unattended mode: {question}")

    def choose(self, question: str, options: list[str], default: int = 0) -> int:
        self.asked.append(question)
        return default
