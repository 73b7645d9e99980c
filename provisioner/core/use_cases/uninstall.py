"""
Uninstall use case — remove an existing installation.

The account and domain come from the saved site record; without one,
the configured default account is assumed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from provisioner.core.context import RunContext
from provisioner.core.engine.rollback import CleanupResult, uninstall
from provisioner.core.persistence.audit import RunAuditEntry, RunHistory

logger = logging.getLogger(__name__)


@dataclass
class UninstallResult:
    account: str = ""
    confirmed: bool = False
    cleanup: CleanupResult | None = None

    @property
    def exit_code(self) -> int:
        if self.cleanup is None:
            return 0
        return 0 if self.cleanup.ok else 1

    def to_dict(self) -> dict:
        return {
            "account": self.account,
            "confirmed": self.confirmed,
            "cleanup": self.cleanup.to_dict() if self.cleanup else None,
        }


def run_uninstall(ctx: RunContext, assume_yes: bool = False) -> UninstallResult:
    """Remove the installation after one confirmation naming the account."""
    if not ctx.site.account:
        ctx.site.account = ctx.config.default_user
    if not ctx.site.home:
        ctx.site.home = ctx.host.home_dir(ctx.site.account)

    result = UninstallResult(account=ctx.site.account)
    question = (
        f"This will remove the ERPNext installation, the user "
        f"'{ctx.site.account}' and all stored credentials. Continue?"
    )
    if not assume_yes and not ctx.prompter.confirm(question, default=False):
        logger.info("Uninstall cancelled")
        return result

    result.confirmed = True
    logger.info("Removing installation for %s", ctx.site.account)
    result.cleanup = uninstall(ctx)

    RunHistory(ctx.state_dir).write(RunAuditEntry(
        operation="uninstall",
        mode=ctx.mode.value,
        status="ok" if result.cleanup.ok else "partial",
        started_at=ctx.started_at,
        completed=list(result.cleanup.undone),
        failed=list(result.cleanup.failed),
        errors=list(result.cleanup.errors),
        context={"account": ctx.site.account, "domain": ctx.site.domain},
    ))
    return result
