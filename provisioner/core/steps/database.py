"""
Step 3 — MariaDB.

The root password is obtained through the Secret Store, so a re-run
reuses the stored value instead of locking out already-configured
consumers.  Passwords reach mysql through stdin or MYSQL_PWD, never argv.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from provisioner.core.context import ENV_DB_ROOT_PASSWORD
from provisioner.core.errors import StepFailure
from provisioner.core.models.secret import DB_ROOT_PASSWORD, Secret
from provisioner.core.models.step import StepKind
from provisioner.core.steps import catalog
from provisioner.core.steps.base import Step

if TYPE_CHECKING:
    from provisioner.core.context import RunContext

logger = logging.getLogger(__name__)


def _sql_literal(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def obtain_db_root_password(ctx: RunContext) -> Secret:
    return ctx.secrets.obtain(
        DB_ROOT_PASSWORD,
        length=ctx.config.db_root_password_length,
        supplied=ctx.env_value(ENV_DB_ROOT_PASSWORD),
    )


class DatabaseStep(Step):
    kind = StepKind.DATABASE
    title = "Setup MariaDB"

    def already_done(self, ctx: RunContext) -> bool:
        return (
            not ctx.apt.missing(catalog.DATABASE_PACKAGES)
            and ctx.host.service_active(catalog.DATABASE_SERVICE)
            and ctx.host.exists(catalog.DATABASE_CONFIG)
            and ctx.secrets.load(DB_ROOT_PASSWORD) is not None
        )

    def _set_root_password(self, ctx: RunContext, password: str) -> None:
        # Passwordless socket login works only until a password is set
        if not ctx.runner.run(["mysql", "-u", "root", "-e", "SELECT 1;"]).ok:
            logger.info("MariaDB root password already set")
            return
        logger.info("Setting MariaDB root password")
        statement = f"ALTER USER 'root'@'localhost' IDENTIFIED BY {_sql_literal(password)};\n"
        ctx.require(
            ctx.runner.run(["mysql", "-u", "root"], input=statement),
            "Setting MariaDB root password",
        )

    def _harden(self, ctx: RunContext, password: str) -> None:
        logger.info("Securing MariaDB installation")
        result = ctx.runner.run(
            ["mysql", "-u", "root"],
            env={"MYSQL_PWD": password},
            input=catalog.DATABASE_HARDENING_SQL,
        )
        if not result.ok:
            ctx.warn(f"MariaDB hardening incomplete ({result.describe_failure()})")

    def apply(self, ctx: RunContext) -> None:
        ctx.require(ctx.apt.ensure(catalog.DATABASE_PACKAGES), "Installing MariaDB")

        password = obtain_db_root_password(ctx).reveal()

        ctx.require(ctx.systemd.start(catalog.DATABASE_SERVICE), "Starting MariaDB")
        ctx.require(ctx.systemd.enable(catalog.DATABASE_SERVICE), "Enabling MariaDB")

        self._set_root_password(ctx, password)

        if ctx.config.db_secure and ctx.prompter.confirm("Run MariaDB secure installation?", default=True):
            self._harden(ctx, password)

        logger.info("Writing MariaDB configuration for Frappe")
        try:
            ctx.host.write_text(catalog.DATABASE_CONFIG, catalog.DATABASE_CONFIG_CONTENT)
        except OSError as e:
            raise StepFailure(f"Cannot write {catalog.DATABASE_CONFIG}: {e}") from e

        ctx.require(ctx.systemd.restart(catalog.DATABASE_SERVICE), "Restarting MariaDB")
        logger.info("MariaDB configured for Frappe")
