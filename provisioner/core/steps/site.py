"""
Step 7 — ERPNext site.

Creates the site, fetches ERPNext and installs it on the site.  The
MariaDB root password reaches ``bench new-site`` through stdin.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from provisioner.core.context import ENV_ADMIN_PASSWORD, ENV_DOMAIN
from provisioner.core.models.secret import ADMIN_PASSWORD
from provisioner.core.models.step import StepKind
from provisioner.core.services.validation import resolve_domain
from provisioner.core.steps.base import Step
from provisioner.core.steps.database import obtain_db_root_password

if TYPE_CHECKING:
    from provisioner.core.context import RunContext

logger = logging.getLogger(__name__)


def site_dir(ctx: RunContext) -> str:
    return f"{ctx.site.bench_dir}/sites/{ctx.site.domain}"


def erpnext_dir(ctx: RunContext) -> str:
    return f"{ctx.site.bench_dir}/apps/erpnext"


class SiteStep(Step):
    kind = StepKind.SITE
    title = "Create site and install ERPNext"

    def configure(self, ctx: RunContext) -> None:
        fallback = ctx.default_domain
        candidate = ctx.env_value(ENV_DOMAIN) or fallback
        ctx.site.domain = resolve_domain(ctx.prompter, candidate, fallback=fallback)

    def already_done(self, ctx: RunContext) -> bool:
        return ctx.host.exists(site_dir(ctx)) and ctx.host.exists(erpnext_dir(ctx))

    def _create_site(self, ctx: RunContext) -> None:
        domain = ctx.site.domain
        db_password = obtain_db_root_password(ctx).reveal()
        admin = ctx.secrets.obtain(
            ADMIN_PASSWORD,
            length=ctx.config.admin_password_length,
            supplied=ctx.env_value(ENV_ADMIN_PASSWORD),
        )
        logger.info("Creating site %s", domain)
        ctx.require(
            ctx.bench(
                "new-site", domain,
                "--mariadb-root-password", "-",
                "--admin-password", admin.reveal(),
                input=db_password + "\n",
            ),
            f"Creating site {domain}",
        )

    def _fetch_erpnext(self, ctx: RunContext) -> None:
        branch = ctx.config.erpnext_branch
        logger.info("Fetching ERPNext (%s)", branch)
        ctx.require(ctx.bench("get-app", "erpnext", "--branch", branch), "Fetching ERPNext")

        app_dir = erpnext_dir(ctx)
        if not ctx.as_account(["yarn", "install", "--check-files"], cwd=app_dir).ok:
            result = ctx.as_account(["yarn", "install", "--network-timeout", "100000"], cwd=app_dir)
            if not result.ok:
                ctx.warn(f"yarn install for ERPNext failed ({result.describe_failure()})")

    def apply(self, ctx: RunContext) -> None:
        domain = ctx.site.domain
        site_existed = ctx.host.exists(site_dir(ctx))

        if site_existed:
            logger.warning("Site %s already exists", domain)
        else:
            self._create_site(ctx)

        if not ctx.host.exists(erpnext_dir(ctx)):
            self._fetch_erpnext(ctx)

        result = ctx.bench("--site", domain, "install-app", "erpnext")
        if not result.ok:
            if not site_existed:
                ctx.require(result, "Installing ERPNext")
            ctx.warn(f"ERPNext may already be installed on {domain}")

        if not ctx.bench("use", domain).ok:
            ctx.warn(f"Could not set {domain} as the default site")

        ctx.site.add_app("erpnext")
        ctx.site.touch()
        ctx.save_site()
        logger.info("ERPNext installed on %s", domain)
