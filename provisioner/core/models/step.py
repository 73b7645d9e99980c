"""
Step kinds, states and per-run step records.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StepKind(str, Enum):
    """Every kind of provisioning step the registry can hold.

    Rollback dispatches on these values, so adding a kind means adding
    an entry to the undo mapping in ``core.engine.rollback``.
    """

    PREPARE_SYSTEM = "prepare_system"
    SERVICE_ACCOUNT = "service_account"
    DATABASE = "database"
    RUNTIME = "runtime"
    CACHE = "cache"
    FRAMEWORK = "framework"
    SITE = "site"
    VERIFY_SERVICES = "verify_services"
    ADDITIONAL_APPS = "additional_apps"
    PRODUCTION = "production"
    FIREWALL = "firewall"


class StepState(str, Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass
class StepRecord:
    """What happened to one step during the current run."""

    kind: StepKind
    title: str
    position: int
    state: StepState = StepState.PENDING
    reason: str = ""          # why skipped / why failed
    fatal: bool = True
    duration_ms: int = 0

    @property
    def finished(self) -> bool:
        return self.state in (StepState.SKIPPED, StepState.DONE, StepState.FAILED)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "position": self.position,
            "state": self.state.value,
            "reason": self.reason,
            "fatal": self.fatal,
            "duration_ms": self.duration_ms,
        }
