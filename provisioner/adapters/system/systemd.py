"""
systemd service control.
"""

from __future__ import annotations

from provisioner.adapters.base import Runner
from provisioner.core.models.command import CommandResult


class Systemd:
    def __init__(self, runner: Runner):
        self._runner = runner

    def _ctl(self, verb: str, service: str) -> CommandResult:
        return self._runner.run(["systemctl", verb, service])

    def start(self, service: str) -> CommandResult:
        return self._ctl("start", service)

    def stop(self, service: str) -> CommandResult:
        return self._ctl("stop", service)

    def restart(self, service: str) -> CommandResult:
        return self._ctl("restart", service)

    def enable(self, service: str) -> CommandResult:
        return self._ctl("enable", service)

    def disable(self, service: str) -> CommandResult:
        return self._ctl("disable", service)
