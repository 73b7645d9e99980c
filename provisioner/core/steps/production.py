"""
Step 10 — production wiring (Nginx + Supervisor).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from provisioner.core.models.step import StepKind
from provisioner.core.steps import catalog
from provisioner.core.steps.base import Step

if TYPE_CHECKING:
    from provisioner.core.context import RunContext

logger = logging.getLogger(__name__)


class ProductionStep(Step):
    kind = StepKind.PRODUCTION
    title = "Setup production mode"
    fatal = False
    question = "Setup production mode (Nginx + Supervisor)?"

    def enabled(self, ctx: RunContext) -> bool:
        return ctx.config.production_mode

    def already_done(self, ctx: RunContext) -> bool:
        return ctx.host.exists(catalog.SUPERVISOR_CONFIG) and ctx.host.exists(catalog.NGINX_CONFIG)

    def apply(self, ctx: RunContext) -> None:
        logger.info("Setting up production mode")
        # Runs as root (writes into /etc); bench lives in the account's ~/.local/bin
        bench = f"{ctx.site.home}/{catalog.BENCH_EXECUTABLE}"
        ctx.require(
            ctx.runner.run(
                [bench, "setup", "production", ctx.site.account, "--yes"],
                cwd=ctx.site.bench_dir,
            ),
            "bench setup production",
        )

        if not ctx.systemd.restart("nginx").ok:
            ctx.warn("Could not restart Nginx")
        if not ctx.runner.run(["supervisorctl", "reload"]).ok:
            ctx.warn("Could not reload Supervisor")

        logger.info("Production mode configured")
