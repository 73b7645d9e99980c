"""
Adapter base — the contracts between steps and the host.

Steps never touch the machine directly.  They go through two narrow
interfaces:

    Runner  executes an external command (optionally as another account
            and in another working directory) and returns a CommandResult.
    Host    answers "is this already true?" questions and performs the
            handful of file operations steps need.

Both have a real implementation (``shell.command.CommandRunner``,
``host.SystemHost``) and a test double in ``mock``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from provisioner.core.models.command import CommandResult


class Runner(ABC):
    """Executes external commands.

    MUST never raise for a failing command.  All failures are captured
    in the returned CommandResult.
    """

    @abstractmethod
    def run(
        self,
        command: Sequence[str],
        *,
        user: str | None = None,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> CommandResult:
        """Run ``command`` to completion.

        Args:
            command: argv list, never a shell string.
            user: Run as this account (login environment: HOME, USER,
                and ``~/.local/bin`` on PATH).  None runs as the caller.
            cwd: Working directory; defaults to the account's home when
                ``user`` is given.
            env: Extra environment variables.
            input: Text piped to stdin (used for passwords so they never
                appear in argv).
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class Host(ABC):
    """Read-mostly view of the target machine.

    Query methods must be fast-ish and never raise; they answer the
    idempotency predicates of steps.
    """

    # ── Queries ────────────────────────────────────────────────

    @abstractmethod
    def package_installed(self, package: str) -> bool:
        """Whether the OS package is installed."""

    @abstractmethod
    def service_active(self, service: str) -> bool:
        """Whether the system service is running."""

    @abstractmethod
    def user_exists(self, account: str) -> bool:
        """Whether the account exists."""

    @abstractmethod
    def home_dir(self, account: str) -> str:
        """Home directory of ``account`` (``/home/<account>`` if unknown)."""

    @abstractmethod
    def which(self, program: str) -> str | None:
        """Absolute path of ``program`` on PATH, or None."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Whether a file or directory exists."""

    @abstractmethod
    def read_text(self, path: str) -> str | None:
        """File contents, or None if the file is missing or unreadable."""

    # ── Mutations ──────────────────────────────────────────────

    @abstractmethod
    def write_text(self, path: str, content: str, mode: int = 0o644) -> None:
        """Create or replace a file and set its permission bits.

        Raises OSError on failure.
        """

    @abstractmethod
    def append_line(self, path: str, line: str) -> bool:
        """Append ``line`` unless the file already contains it.

        Returns True when the file was changed.  Raises OSError on failure.
        """

    @abstractmethod
    def remove(self, path: str) -> None:
        """Remove a file or a directory tree; missing paths are ignored."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
