"""
Step 8 — service verification.

Read-only checks; failures here never undo anything.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from provisioner.core.errors import StepFailure
from provisioner.core.models.secret import DB_ROOT_PASSWORD
from provisioner.core.models.step import StepKind
from provisioner.core.steps.base import Step

if TYPE_CHECKING:
    from provisioner.core.context import RunContext

logger = logging.getLogger(__name__)


class VerifyServicesStep(Step):
    kind = StepKind.VERIFY_SERVICES
    title = "Verify services"
    fatal = False

    def already_done(self, ctx: RunContext) -> bool:
        return False

    def apply(self, ctx: RunContext) -> None:
        secret = ctx.secrets.load(DB_ROOT_PASSWORD)
        env = {"MYSQL_PWD": secret.reveal()} if secret else None
        result = ctx.runner.run(["mysql", "-u", "root", "-e", "SELECT 1;"], env=env)
        if not result.ok:
            raise StepFailure(f"MariaDB connection failed ({result.describe_failure()})")
        logger.info("MariaDB connection OK")

        pong = ctx.runner.run(["redis-cli", "ping"])
        if pong.ok and "PONG" in pong.stdout:
            logger.info("Redis connection OK")
        else:
            ctx.warn("Redis did not answer PING")

        if ctx.bench("doctor").ok:
            logger.info("bench doctor OK")
        else:
            ctx.warn("bench doctor reported problems")
