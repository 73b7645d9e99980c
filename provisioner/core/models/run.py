"""
Run modes and the run report.

The report is the engine's equivalent of an execution report: one
record per registered step plus the append-only ledger of completed
step kinds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from provisioner.core.models.step import StepKind, StepRecord, StepState


class RunMode(str, Enum):
    AUTOMATED = "automated"
    QUICK = "quick"
    INTERACTIVE = "interactive"

    @property
    def unattended(self) -> bool:
        """True when no operator is expected at the terminal."""
        return self is not RunMode.INTERACTIVE


@dataclass
class RunReport:
    """Result of executing the step registry once."""

    mode: RunMode
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    ended_at: str = ""
    records: list[StepRecord] = field(default_factory=list)
    ledger: list[StepKind] = field(default_factory=list)
    aborted: bool = False

    def record_for(self, kind: StepKind) -> StepRecord | None:
        for record in self.records:
            if record.kind is kind:
                return record
        return None

    def _count(self, state: StepState) -> int:
        return sum(1 for r in self.records if r.state is state)

    @property
    def done(self) -> int:
        return self._count(StepState.DONE)

    @property
    def skipped(self) -> int:
        return self._count(StepState.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(StepState.FAILED)

    @property
    def failures(self) -> list[StepRecord]:
        return [r for r in self.records if r.state is StepState.FAILED]

    @property
    def status(self) -> str:
        if self.aborted:
            return "failed"
        if self.failed == 0:
            return "ok"
        return "partial"

    def finish(self) -> None:
        self.ended_at = datetime.now(UTC).isoformat()

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "status": self.status,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "done": self.done,
            "skipped": self.skipped,
            "failed": self.failed,
            "ledger": [k.value for k in self.ledger],
            "steps": [r.to_dict() for r in self.records],
        }
