"""
APT package operations.

Thin wrappers that build apt-get argv lists and hand them to the
runner.  ``ensure`` is the idempotent form: it installs only what the
host reports as missing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from provisioner.adapters.base import Host, Runner
from provisioner.core.models.command import CommandResult

logger = logging.getLogger(__name__)


class Apt:
    def __init__(self, runner: Runner, host: Host):
        self._runner = runner
        self._host = host

    def missing(self, packages: Iterable[str]) -> list[str]:
        return [p for p in packages if not self._host.package_installed(p)]

    def update(self, *extra: str) -> CommandResult:
        return self._runner.run(["apt-get", "update", *extra])

    def upgrade(self) -> CommandResult:
        return self._runner.run(["apt-get", "upgrade", "-y"])

    def install(self, packages: Iterable[str], *extra: str) -> CommandResult:
        return self._runner.run(["apt-get", "install", "-y", *extra, *packages])

    def ensure(self, packages: Iterable[str]) -> CommandResult:
        """Install whichever of ``packages`` are not installed yet."""
        packages = list(packages)
        todo = self.missing(packages)
        if not todo:
            logger.info("Already installed, skipping: %s", ", ".join(packages))
            return CommandResult.success(["apt-get", "install"], stdout="nothing to do")
        logger.info("Installing %s", ", ".join(todo))
        return self.install(todo)

    def remove(self, packages: Iterable[str]) -> CommandResult:
        return self._runner.run(["apt-get", "remove", "-y", *packages])
