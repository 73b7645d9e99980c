"""
CommandResult — the contract between steps and the command runner.

Steps ask the runner to execute something on the host.  The runner
NEVER raises for a failing command: the outcome is captured here and
the step decides whether it is a failure worth raising.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class CommandResult(BaseModel):
    """Outcome of one external command."""

    command: list[str] = Field(default_factory=list)
    user: str | None = None          # account the command ran as (None = caller)
    cwd: str | None = None
    return_code: int = 0

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    stdout: str = ""
    stderr: str = ""
    error: str | None = None         # set when the command could not be started

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.error is None and self.return_code == 0

    @property
    def failed(self) -> bool:
        return not self.ok

    def describe_failure(self) -> str:
        """One-line reason suitable for a log line or a StepFailure."""
        if self.error:
            return self.error
        detail = self.stderr.strip().splitlines()[-1:] if self.stderr else []
        suffix = f": {detail[0]}" if detail else ""
        return f"exit {self.return_code}{suffix}"

    @classmethod
    def success(cls, command: list[str], stdout: str = "", **kwargs: Any) -> CommandResult:
        """Create a success result."""
        return cls(command=command, return_code=0, stdout=stdout, **kwargs)

    @classmethod
    def failure(
        cls,
        command: list[str],
        return_code: int = 1,
        stderr: str = "",
        **kwargs: Any,
    ) -> CommandResult:
        """Create a failure result for a command that ran and exited non-zero."""
        return cls(command=command, return_code=return_code, stderr=stderr, **kwargs)

    @classmethod
    def not_started(cls, command: list[str], error: str, **kwargs: Any) -> CommandResult:
        """Create a result for a command that could not be started at all."""
        return cls(command=command, return_code=-1, error=error, **kwargs)
