"""
Shell command runner — the SINGLE PLACE where ``subprocess.run`` is
called for provisioning work.

Commands are always argv lists, never shell strings.  Running "as the
service account" is a parameter of the call (``user=``), not a script
piped into ``su``: the child process switches uid/gid itself and gets
the account's login environment.

There is no timeout.  A hung package manager hangs the run; cancelling
is up to the operator.
"""

from __future__ import annotations

import logging
import os
import pwd
import shlex
import subprocess
import time
from collections.abc import Mapping, Sequence

from provisioner.adapters.base import Runner
from provisioner.core.models.command import CommandResult
from provisioner.core.observability.logging_config import redact

logger = logging.getLogger(__name__)

# Keep the tail only: apt and bench can be extremely chatty
_OUTPUT_TAIL = 4000

# Non-interactive apt, predictable output for parsing
_BASE_ENV = {
    "DEBIAN_FRONTEND": "noninteractive",
    "LC_ALL": "C.UTF-8",
}


def _account_env(account: str) -> tuple[dict[str, str], int, int, str]:
    """Login-like environment for ``account``: (env, uid, gid, home)."""
    entry = pwd.getpwnam(account)
    home = entry.pw_dir
    path = os.environ.get("PATH", "/usr/local/bin:/usr/bin:/bin")
    env = {
        "HOME": home,
        "USER": account,
        "LOGNAME": account,
        "SHELL": entry.pw_shell or "/bin/bash",
        "PATH": f"{home}/.local/bin:{path}",
    }
    return env, entry.pw_uid, entry.pw_gid, home


class CommandRunner(Runner):
    """Run commands on the local host and capture their output."""

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
        if not argv:
            return CommandResult.not_started(argv, "Empty command")

        child_env = os.environ.copy()
        child_env.update(_BASE_ENV)
        run_kwargs: dict = {}

        if user:
            try:
                account_env, uid, gid, home = _account_env(user)
            except KeyError:
                return CommandResult.not_started(
                    argv, f"No such account: {user}", user=user, cwd=cwd,
                )
            child_env.update(account_env)
            run_kwargs.update(user=uid, group=gid, extra_groups=[])
            cwd = cwd or home

        if env:
            child_env.update(env)

        logger.debug(
            "Executing%s: %s (cwd=%s)",
            f" as {user}" if user else "",
            shlex.join(redact(part) for part in argv),
            cwd or ".",
        )
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                cwd=cwd,
                env=child_env,
                input=input,
                capture_output=True,
                text=True,
                **run_kwargs,
            )
        except FileNotFoundError:
            return CommandResult.not_started(
                argv, f"Command not found: {argv[0]}", user=user, cwd=cwd,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("Cannot start %s: %s", argv[0], e)
            return CommandResult.not_started(
                argv, f"Command execution error: {e}", user=user, cwd=cwd,
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = (result.stdout or "")[-_OUTPUT_TAIL:]
        stderr = (result.stderr or "")[-_OUTPUT_TAIL:]

        if result.returncode != 0:
            logger.debug("%s exited %d: %s", argv[0], result.returncode, stderr.strip()[-300:])

        return CommandResult(
            command=argv,
            user=user,
            cwd=cwd,
            return_code=result.returncode,
            duration_ms=elapsed_ms,
            stdout=stdout,
            stderr=stderr,
        )
