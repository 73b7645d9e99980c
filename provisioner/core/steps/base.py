"""
Step base — the contract every provisioning step implements.

    configure(ctx)      resolve inputs (account, domain, versions ...)
    already_done(ctx)   idempotency predicate; True → apply() is skipped
    apply(ctx)          perform the action; raise StepFailure on failure
    enabled(ctx)        feature toggle; False → skipped

Undo actions are not methods: rollback looks them up by ``kind`` in
``core.engine.rollback.UNDO_ACTIONS``.

To create a new step:
    1. Add a StepKind
    2. Subclass Step, implement already_done and apply
    3. Register it in ``registry.default_steps``
    4. Add its undo entry (or None) in the rollback mapping
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from provisioner.core.models.step import StepKind

if TYPE_CHECKING:
    from provisioner.core.context import RunContext


class Step(ABC):
    kind: ClassVar[StepKind]
    title: ClassVar[str]

    # Fatal steps stop the run; recoverable ones are logged and skipped over
    fatal: ClassVar[bool] = True

    # Steps with their own question are gated in every interactive run,
    # not only in step-by-step runs.
    question: ClassVar[str | None] = None
    question_default: ClassVar[bool] = True

    @property
    def name(self) -> str:
        return self.kind.value

    def enabled(self, ctx: RunContext) -> bool:
        return True

    def configure(self, ctx: RunContext) -> None:
        """Resolve inputs before the predicate runs.  Default: nothing."""

    @abstractmethod
    def already_done(self, ctx: RunContext) -> bool:
        """True when the host already satisfies this step."""

    @abstractmethod
    def apply(self, ctx: RunContext) -> None:
        """Perform the step.  Raise StepFailure on failure."""

    def gate_question(self, position: int) -> str:
        return self.question or f"Step {position}: {self.title}?"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.name!r}>"
