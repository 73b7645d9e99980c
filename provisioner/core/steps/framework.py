"""
Step 6 — bench CLI and the Frappe framework.

Everything here runs as the service account.  The bench directory is
created by ``bench init``, so its presence is the completion marker.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from provisioner.core.errors import StepFailure
from provisioner.core.models.step import StepKind
from provisioner.core.steps import catalog
from provisioner.core.steps.base import Step

if TYPE_CHECKING:
    from provisioner.core.context import RunContext

logger = logging.getLogger(__name__)


class FrameworkStep(Step):
    kind = StepKind.FRAMEWORK
    title = "Install Frappe Bench"

    def already_done(self, ctx: RunContext) -> bool:
        if ctx.host.exists(ctx.site.bench_dir):
            logger.warning("Frappe bench already exists at %s", ctx.site.bench_dir)
            return True
        return False

    def _install_bench_cli(self, ctx: RunContext) -> None:
        pip = ["pip3", "install", "--user", catalog.BENCH_PACKAGE]
        # PEP 668 distributions refuse --user installs without the flag
        result = ctx.as_account([*pip, "--break-system-packages"], in_bench=False)
        if not result.ok:
            logger.info("Retrying bench install without --break-system-packages")
            result = ctx.as_account(pip, in_bench=False)
        ctx.require(result, "Installing the bench CLI")

        bashrc = f"{ctx.site.home}/.bashrc"
        try:
            ctx.host.append_line(bashrc, catalog.LOCAL_BIN_EXPORT)
        except OSError as e:
            ctx.warn(f"Could not update {bashrc}: {e}")

    def apply(self, ctx: RunContext) -> None:
        logger.info("Installing bench CLI for %s", ctx.site.account)
        self._install_bench_cli(ctx)

        if not ctx.as_account(["yarn", "config", "set", "registry", catalog.NPM_REGISTRY], in_bench=False).ok:
            ctx.warn("Could not set the Yarn registry")
        ctx.as_account(["yarn", "cache", "clean"], in_bench=False)

        branch = ctx.config.frappe_branch
        logger.info("Initialising Frappe bench (%s) — this takes a while", branch)
        result = ctx.as_account(
            ["bench", "init", "frappe-bench", "--frappe-branch", branch, "--python", "python3"],
            cwd=ctx.site.home,
        )
        if not result.ok:
            raise StepFailure(f"bench init failed ({result.describe_failure()})")

        ctx.save_site()
        logger.info("Frappe bench initialised at %s", ctx.site.bench_dir)
