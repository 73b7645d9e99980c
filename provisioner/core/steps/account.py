"""
Step 2 — service account.

Creates the unprivileged account that owns the bench, adds it to the
sudo group and drops a sudoers file that (by default) only allows the
service-control commands production wiring needs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from provisioner.core.context import ENV_ACCOUNT
from provisioner.core.errors import StepFailure
from provisioner.core.models.step import StepKind
from provisioner.core.services.validation import resolve_account
from provisioner.core.steps import catalog
from provisioner.core.steps.base import Step

if TYPE_CHECKING:
    from provisioner.core.context import RunContext

logger = logging.getLogger(__name__)


def sudoers_path(account: str) -> str:
    return f"{catalog.SUDOERS_DIR}/{account}"


class ServiceAccountStep(Step):
    kind = StepKind.SERVICE_ACCOUNT
    title = "Create Frappe user"

    def configure(self, ctx: RunContext) -> None:
        candidate = ctx.env_value(ENV_ACCOUNT) or ctx.config.default_user
        account = resolve_account(ctx.prompter, candidate)
        ctx.site.account = account
        ctx.site.home = ctx.host.home_dir(account)

    def already_done(self, ctx: RunContext) -> bool:
        if ctx.host.user_exists(ctx.site.account):
            logger.warning("User %s already exists", ctx.site.account)
            return True
        return False

    def apply(self, ctx: RunContext) -> None:
        account = ctx.site.account
        logger.info("Creating user %s", account)

        ctx.require(
            ctx.runner.run(["adduser", "--disabled-password", "--gecos", "", account]),
            f"Creating user {account}",
        )
        ctx.require(
            ctx.runner.run(["usermod", "-aG", "sudo", account]),
            f"Adding {account} to the sudo group",
        )
        ctx.site.home = ctx.host.home_dir(account)

        template = catalog.SUDOERS_LIMITED if ctx.config.sudo_limited else catalog.SUDOERS_FULL
        path = sudoers_path(account)
        try:
            ctx.host.write_text(path, template.format(account=account), mode=catalog.SUDOERS_MODE)
        except OSError as e:
            raise StepFailure(f"Cannot write {path}: {e}") from e

        check = ctx.runner.run(["visudo", "-cf", path])
        if not check.ok:
            ctx.host.remove(path)
            raise StepFailure(f"Generated sudoers file {path} is invalid ({check.describe_failure()})")

        scope = "limited" if ctx.config.sudo_limited else "full"
        logger.info("User %s created with %s sudo privileges", account, scope)
