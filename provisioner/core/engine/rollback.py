"""
Rollback and uninstall.

Undo actions are looked up by StepKind in ``UNDO_ACTIONS``.  Every kind
must have an entry (``None`` when there is nothing to undo); the module
refuses to import otherwise, so a new step cannot silently be left
without one.

Both ``rollback`` and ``uninstall`` are best effort: a failing action is
logged and the next one still runs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from provisioner.core.context import RunContext
from provisioner.core.models.secret import DB_ROOT_PASSWORD
from provisioner.core.models.step import StepKind
from provisioner.core.persistence.state_file import remove_site, site_path
from provisioner.core.steps import catalog
from provisioner.core.steps.account import sudoers_path

logger = logging.getLogger(__name__)

UndoAction = Callable[[RunContext], None]


@dataclass
class CleanupResult:
    """Outcome of a rollback or uninstall pass."""

    undone: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "undone": list(self.undone),
            "failed": list(self.failed),
            "errors": list(self.errors),
        }


# ── Undo actions ────────────────────────────────────────────────────


def _undo_service_account(ctx: RunContext) -> None:
    account = ctx.site.account
    if not account:
        return
    ctx.require(ctx.runner.run(["userdel", "-r", account]), f"Removing user {account}")
    ctx.host.remove(sudoers_path(account))


def _undo_database(ctx: RunContext) -> None:
    ctx.systemd.stop(catalog.DATABASE_SERVICE)
    ctx.require(ctx.apt.remove(catalog.DATABASE_PACKAGES), "Removing MariaDB")
    ctx.host.remove(catalog.DATABASE_CONFIG)


def _undo_runtime(ctx: RunContext) -> None:
    ctx.require(ctx.apt.remove(["nodejs"]), "Removing Node.js")


def _undo_cache(ctx: RunContext) -> None:
    ctx.systemd.stop(catalog.CACHE_SERVICE)
    ctx.require(ctx.apt.remove([catalog.CACHE_PACKAGE]), "Removing Redis")


def _undo_framework(ctx: RunContext) -> None:
    if ctx.site.bench_dir:
        ctx.host.remove(ctx.site.bench_dir)


def _undo_site(ctx: RunContext) -> None:
    domain = ctx.site.domain
    if domain:
        command = ["drop-site", domain, "--force", "--no-backup"]
        secret = ctx.secrets.load(DB_ROOT_PASSWORD)
        if secret is not None:
            command += ["--db-root-password", secret.reveal()]
        ctx.require(ctx.bench(*command), f"Dropping site {domain}")
    remove_site(site_path(ctx.state_dir))


def _undo_additional_apps(ctx: RunContext) -> None:
    for app in reversed(ctx.site.apps):
        if app == "erpnext":
            continue
        ctx.require(
            ctx.bench("--site", ctx.site.domain, "uninstall-app", app, "--yes", "--no-backup"),
            f"Uninstalling {app}",
        )


def _undo_production(ctx: RunContext) -> None:
    _remove_production_config(ctx)
    ctx.runner.run(["supervisorctl", "reload"])
    ctx.systemd.restart("nginx")


def _undo_firewall(ctx: RunContext) -> None:
    ctx.require(ctx.runner.run(["ufw", "--force", "disable"]), "Disabling UFW")


UNDO_ACTIONS: dict[StepKind, UndoAction | None] = {
    StepKind.PREPARE_SYSTEM: None,
    StepKind.SERVICE_ACCOUNT: _undo_service_account,
    StepKind.DATABASE: _undo_database,
    StepKind.RUNTIME: _undo_runtime,
    StepKind.CACHE: _undo_cache,
    StepKind.FRAMEWORK: _undo_framework,
    StepKind.SITE: _undo_site,
    StepKind.VERIFY_SERVICES: None,
    StepKind.ADDITIONAL_APPS: _undo_additional_apps,
    StepKind.PRODUCTION: _undo_production,
    StepKind.FIREWALL: _undo_firewall,
}

_missing = set(StepKind) - set(UNDO_ACTIONS)
if _missing:
    raise RuntimeError(
        "Undo mapping incomplete: " + ", ".join(sorted(k.value for k in _missing))
    )


# ── Passes ──────────────────────────────────────────────────────────


def rollback(
    ledger: Iterable[StepKind],
    ctx: RunContext,
    actions: dict[StepKind, UndoAction | None] | None = None,
) -> CleanupResult:
    """Undo completed steps, most recent first.

    Args:
        ledger: Completed step kinds, in completion order.
        ctx: The run context the steps ran with.
        actions: Undo mapping override (tests).
    """
    actions = UNDO_ACTIONS if actions is None else actions
    result = CleanupResult()

    for kind in reversed(list(ledger)):
        action = actions.get(kind)
        if action is None:
            logger.debug("Nothing to undo for %s", kind.value)
            continue
        logger.info("Rolling back %s", kind.value)
        try:
            action(ctx)
            result.undone.append(kind.value)
        except Exception as e:
            logger.warning("Rollback of %s failed: %s", kind.value, e)
            result.failed.append(kind.value)
            result.errors.append(f"{kind.value}: {e}")

    logger.info("Rollback finished: %d undone, %d failed", len(result.undone), len(result.failed))
    return result


def _stop_supervisor(ctx: RunContext) -> None:
    ctx.runner.run(["supervisorctl", "stop", "all"])


def _stop_nginx(ctx: RunContext) -> None:
    ctx.systemd.stop("nginx")


def _remove_production_config(ctx: RunContext) -> None:
    ctx.host.remove(catalog.SUPERVISOR_CONFIG)
    ctx.host.remove(catalog.NGINX_CONFIG)


def _remove_account(ctx: RunContext) -> None:
    if ctx.site.account and ctx.host.user_exists(ctx.site.account):
        ctx.require(ctx.runner.run(["userdel", "-r", ctx.site.account]), f"Removing user {ctx.site.account}")


def _remove_sudoers(ctx: RunContext) -> None:
    if ctx.site.account:
        ctx.host.remove(sudoers_path(ctx.site.account))


def _remove_credentials(ctx: RunContext) -> None:
    for path in ctx.secrets.remove_all():
        logger.info("Removed %s", path)


def _remove_site_record(ctx: RunContext) -> None:
    remove_site(site_path(ctx.state_dir))


def uninstall(ctx: RunContext) -> CleanupResult:
    """Remove the installation described by ``ctx.site``."""
    steps: list[tuple[str, UndoAction]] = [
        ("stop supervisor programs", _stop_supervisor),
        ("stop nginx", _stop_nginx),
        ("remove bench", _undo_framework),
        ("remove production config", _remove_production_config),
        ("remove user", _remove_account),
        ("remove sudoers", _remove_sudoers),
        ("remove credentials", _remove_credentials),
        ("remove site record", _remove_site_record),
    ]

    result = CleanupResult()
    for label, action in steps:
        try:
            action(ctx)
            result.undone.append(label)
        except Exception as e:
            logger.warning("Uninstall: %s failed: %s", label, e)
            result.failed.append(label)
            result.errors.append(f"{label}: {e}")

    logger.info("Uninstall finished")
    return result
