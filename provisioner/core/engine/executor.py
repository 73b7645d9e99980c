"""
Engine executor — runs the step registry against a context.

Each step moves through:

    Pending ─┬─► Skipped            disabled, already done, or gate declined
             └─► Running ─┬─► Done      kind appended to the ledger
                          └─► Failed    fatal → stop and re-raise
                                        recoverable → warn and continue

Per step the order is: enabled → configure → already_done → gate → apply.
Gates are only posed to an operator (interactive mode): every step in a
step-by-step run, and steps carrying their own question in a full run.

Strictly sequential.  The engine never prompts for rollback; that is
the top-level handler's job.
"""

from __future__ import annotations

import logging
import time

from provisioner.core.context import RunContext
from provisioner.core.errors import PersistenceError, PreconditionError, SecretGenerationError, StepFailure
from provisioner.core.models.run import RunReport
from provisioner.core.models.step import StepRecord, StepState
from provisioner.core.steps.base import Step
from provisioner.core.steps.registry import StepRegistry

logger = logging.getLogger(__name__)

# Not step failures: the run cannot continue safely whatever the step's criticality
_UNRECOVERABLE = (PersistenceError, SecretGenerationError, PreconditionError)


def _gate(step: Step, position: int, ctx: RunContext) -> bool:
    """Whether the step may enter Running."""
    if not ctx.prompter.interactive:
        return True
    if ctx.step_by_step or step.question:
        return ctx.prompter.confirm(step.gate_question(position), default=step.question_default)
    return True


def _as_failure(step: Step, exc: Exception) -> StepFailure:
    if isinstance(exc, StepFailure):
        failure = exc
    else:
        logger.debug("Unexpected error in %s", step.name, exc_info=exc)
        failure = StepFailure(f"Unexpected error: {exc}")
    if failure.fatal is None:
        failure.fatal = step.fatal
    failure.step = step.name
    return failure


def _run_step(step: Step, position: int, ctx: RunContext, record: StepRecord) -> None:
    if not step.enabled(ctx):
        record.state = StepState.SKIPPED
        record.reason = "disabled by configuration"
        logger.info("Skipping %s: disabled by configuration", step.title)
        return

    step.configure(ctx)

    if step.already_done(ctx):
        record.state = StepState.SKIPPED
        record.reason = "already done"
        logger.info("Step %d/%s (%s) already done — skipping", position, step.name, step.title)
        return

    if not _gate(step, position, ctx):
        record.state = StepState.SKIPPED
        record.reason = "declined"
        logger.info("Skipping %s: declined", step.title)
        return

    record.state = StepState.RUNNING
    logger.info("Step %d: %s", position, step.title)
    step.apply(ctx)
    record.state = StepState.DONE
    ctx.ledger.append(step.kind)


def execute_run(ctx: RunContext, registry: StepRegistry) -> RunReport:
    """Execute every registered step in order.

    Returns:
        RunReport with one record per step and the ledger.

    Raises:
        StepFailure: A fatal step failed (``report`` is attached as
            ``exc.report``).
        PersistenceError: A secret could not be protected.
    """
    report = RunReport(mode=ctx.mode, ledger=ctx.ledger)
    report.records = [
        StepRecord(kind=step.kind, title=step.title, position=pos, fatal=step.fatal)
        for pos, step in registry.positions()
    ]

    for position, step in registry.positions():
        record = report.records[position - 1]
        start = time.monotonic()
        try:
            _run_step(step, position, ctx, record)
        except _UNRECOVERABLE as e:
            record.state = StepState.FAILED
            record.reason = str(e)
            report.aborted = True
            report.finish()
            e.report = report  # type: ignore[attr-defined]
            raise
        except Exception as e:
            failure = _as_failure(step, e)
            record.state = StepState.FAILED
            record.reason = failure.message
            if failure.fatal:
                logger.error("%s failed: %s", step.title, failure.message)
                report.aborted = True
                report.finish()
                failure.report = report  # type: ignore[attr-defined]
                if failure is e:
                    raise
                raise failure from e
            ctx.warn(f"{step.title} failed (continuing): {failure.message}")
        finally:
            record.duration_ms = int((time.monotonic() - start) * 1000)

    report.finish()
    return report
