"""Adapters — how steps reach the host.

Public re-exports for convenient access.
"""

from provisioner.adapters.base import Host, Runner
from provisioner.adapters.host import SystemHost
from provisioner.adapters.mock import FakeHost, RecordingRunner
from provisioner.adapters.shell.command import CommandRunner

__all__ = [
    "CommandRunner",
    "FakeHost",
    "Host",
    "RecordingRunner",
    "Runner",
    "SystemHost",
]
