"""
Step 11 — UFW firewall.
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


def firewall_active(ctx: RunContext) -> bool:
    if not ctx.host.package_installed(catalog.FIREWALL_PACKAGE):
        return False
    status = ctx.runner.run(["ufw", "status"])
    return status.ok and "Status: active" in status.stdout


class FirewallStep(Step):
    kind = StepKind.FIREWALL
    title = "Setup firewall"
    fatal = False
    question = "Setup UFW firewall?"

    def enabled(self, ctx: RunContext) -> bool:
        return ctx.config.firewall_enabled

    def already_done(self, ctx: RunContext) -> bool:
        return firewall_active(ctx)

    def apply(self, ctx: RunContext) -> None:
        ctx.require(ctx.apt.ensure([catalog.FIREWALL_PACKAGE]), "Installing UFW")

        for rule in catalog.FIREWALL_RULES:
            if not ctx.runner.run(["ufw", "allow", rule]).ok:
                ctx.warn(f"Could not add firewall rule {rule!r}")

        ctx.require(ctx.runner.run(["ufw", "--force", "enable"]), "Enabling UFW")
        logger.info("Firewall enabled (%s)", ", ".join(catalog.FIREWALL_RULES))
