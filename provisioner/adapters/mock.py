"""
Test doubles for the Runner and Host interfaces.

``RecordingRunner`` succeeds for every command unless told otherwise
and remembers everything it was asked to run.  ``FakeHost`` is an
in-memory machine whose state tests can pre-seed (e.g. "MariaDB is
already installed") to exercise the idempotency predicates of steps.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from provisioner.adapters.base import Host, Runner
from provisioner.core.models.command import CommandResult


@dataclass
class RecordedCall:
    command: list[str]
    user: str | None = None
    cwd: str | None = None
    env: dict[str, str] | None = None
    input: str | None = None


class RecordingRunner(Runner):
    """Universal runner double.

    By default every command succeeds with empty output.  Responses are
    matched by argv prefix, most specific (longest) prefix first.
    """

    def __init__(self) -> None:
        self._responses: dict[tuple[str, ...], CommandResult] = {}
        self._calls: list[RecordedCall] = []

    @property
    def calls(self) -> list[RecordedCall]:
        """Every call this runner has received, in order."""
        return self._calls

    @property
    def commands(self) -> list[list[str]]:
        return [c.command for c in self._calls]

    @property
    def call_count(self) -> int:
        return len(self._calls)

    def ran(self, *prefix: str) -> bool:
        """Whether any recorded command starts with ``prefix``."""
        return any(tuple(c.command[: len(prefix)]) == prefix for c in self._calls)

    def respond(self, prefix: Sequence[str], stdout: str = "", return_code: int = 0) -> None:
        """Configure the output of commands starting with ``prefix``."""
        key = tuple(prefix)
        self._responses[key] = CommandResult(
            command=list(key), return_code=return_code, stdout=stdout,
        )

    def fail_on(self, prefix: Sequence[str], stderr: str = "mock failure", return_code: int = 1) -> None:
        """Configure commands starting with ``prefix`` to fail."""
        key = tuple(prefix)
        self._responses[key] = CommandResult.failure(
            list(key), return_code=return_code, stderr=stderr,
        )

    def run(
        self,
        command: Sequence[str],
        *,
        user: str | None = None,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> CommandResult:
        argv = [str(part) for part in command]
        self._calls.append(
            RecordedCall(argv, user=user, cwd=cwd, env=dict(env) if env else None, input=input)
        )

        for key in sorted(self._responses, key=len, reverse=True):
            if tuple(argv[: len(key)]) == key:
                template = self._responses[key]
                return template.model_copy(update={"command": argv, "user": user, "cwd": cwd})

        return CommandResult.success(argv, user=user, cwd=cwd)

    def reset(self) -> None:
        """Clear call log and configured responses."""
        self._calls.clear()
        self._responses.clear()


class FakeHost(Host):
    """In-memory host state."""

    def __init__(
        self,
        *,
        packages: Iterable[str] = (),
        services: Iterable[str] = (),
        users: Mapping[str, str] | None = None,
        programs: Mapping[str, str] | None = None,
        files: Mapping[str, str] | None = None,
        dirs: Iterable[str] = (),
    ) -> None:
        self.packages: set[str] = set(packages)
        self.services: set[str] = set(services)
        self.users: dict[str, str] = dict(users or {})
        self.programs: dict[str, str] = dict(programs or {})
        self.files: dict[str, str] = dict(files or {})
        self.modes: dict[str, int] = {}
        self.dirs: set[str] = {d.rstrip("/") for d in dirs}
        self.removed: list[str] = []

    # ── Queries ────────────────────────────────────────────────

    def package_installed(self, package: str) -> bool:
        return package in self.packages

    def service_active(self, service: str) -> bool:
        return service in self.services

    def user_exists(self, account: str) -> bool:
        return account in self.users

    def home_dir(self, account: str) -> str:
        return self.users.get(account, f"/home/{account}")

    def which(self, program: str) -> str | None:
        return self.programs.get(program)

    def exists(self, path: str) -> bool:
        path = path.rstrip("/")
        if path in self.files or path in self.dirs:
            return True
        prefix = path + "/"
        return any(p.startswith(prefix) for p in (*self.files, *self.dirs))

    def read_text(self, path: str) -> str | None:
        return self.files.get(path)

    # ── Mutations ──────────────────────────────────────────────

    def write_text(self, path: str, content: str, mode: int = 0o644) -> None:
        self.files[path] = content
        self.modes[path] = mode

    def append_line(self, path: str, line: str) -> bool:
        current = self.files.get(path, "")
        if line in current.splitlines():
            return False
        prefix = "" if not current or current.endswith("\n") else "\n"
        self.files[path] = f"{current}{prefix}{line}\n"
        return True

    def remove(self, path: str) -> None:
        path = path.rstrip("/")
        self.removed.append(path)
        prefix = path + "/"
        self.files = {p: c for p, c in self.files.items() if p != path and not p.startswith(prefix)}
        self.dirs = {d for d in self.dirs if d != path and not d.startswith(prefix)}
