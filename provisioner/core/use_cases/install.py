"""
Install use case — the vertical slice from a chosen mode to exit code.

    build context → pre-flight → execute registry → summary → history

This is the single top-level handler for run-stopping errors: fatal
step failures, unprotectable secrets and resource shortfalls all end
here, are logged once, optionally rolled back, and become exit code 1.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.base import Host, Runner
from provisioner.core.config.loader import ProvisionConfig
from provisioner.core.context import RunContext
from provisioner.core.engine.executor import execute_run
from provisioner.core.engine.rollback import CleanupResult, rollback
from provisioner.core.errors import PersistenceError, ProvisionError, ResourceError
from provisioner.core.models.host import HostProfile
from provisioner.core.models.run import RunMode, RunReport
from provisioner.core.models.secret import ADMIN_PASSWORD, DB_ROOT_PASSWORD
from provisioner.core.models.site import InstalledSite
from provisioner.core.models.step import StepState
from provisioner.core.persistence.audit import RunAuditEntry, RunHistory
from provisioner.core.persistence.state_file import load_site, site_path
from provisioner.core.services.preflight import PreflightResult, run_preflight
from provisioner.core.services.prompter import Prompter
from provisioner.core.services.secret_store import SecretStore
from provisioner.core.steps.registry import StepRegistry, default_registry

logger = logging.getLogger(__name__)

ADMIN_USERNAME = "Administrator"


@dataclass
class InstallResult:
    """Outcome of one install run."""

    exit_code: int = 0
    report: RunReport | None = None
    preflight: PreflightResult | None = None
    rollback: CleanupResult | None = None
    summary_file: Path | None = None
    site: InstalledSite | None = None
    credential_files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failed_components: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> dict:
        result: dict = {"exit_code": self.exit_code}
        if self.error:
            result["error"] = self.error
        if self.report:
            result["report"] = self.report.to_dict()
        if self.rollback:
            result["rollback"] = self.rollback.to_dict()
        if self.summary_file:
            result["summary_file"] = str(self.summary_file)
        result["warnings"] = list(self.warnings)
        result["failed_components"] = list(self.failed_components)
        return result


def build_context(
    mode: RunMode,
    config: ProvisionConfig,
    *,
    host: Host,
    runner: Runner,
    prompter: Prompter,
    profile: HostProfile | None = None,
    step_by_step: bool = False,
    environ: Mapping[str, str] | None = None,
) -> RunContext:
    """Assemble the run context; picks up a previously saved site record."""
    secrets = SecretStore(
        credentials_dir=Path(config.credentials_dir),
        summary_file=Path(config.summary_file),
        prompter=prompter,
    )
    ctx = RunContext(
        mode=mode,
        config=config,
        host=host,
        runner=runner,
        prompter=prompter,
        secrets=secrets,
        profile=profile or HostProfile(),
        step_by_step=step_by_step,
        environ=dict(environ or {}),
    )
    previous = load_site(site_path(ctx.state_dir))
    if previous is not None:
        logger.info("Found previous installation record (account %s)", previous.account or "?")
        ctx.site = previous
    return ctx


def _summary_lines(ctx: RunContext) -> list[str]:
    site = ctx.site
    lines = [
        "ERPNext installation credentials",
        "================================",
        f"ERPNext URL: {site.url}",
        f"Admin Username: {ADMIN_USERNAME}",
    ]
    admin = ctx.secrets.load(ADMIN_PASSWORD)
    if admin is not None:
        lines.append(f"Admin Password: {admin.reveal()}")
    db = ctx.secrets.load(DB_ROOT_PASSWORD)
    if db is not None:
        lines.append(f"MariaDB root password: {db.reveal()}")
    lines += [
        f"Frappe user: {site.account}",
        f"Bench directory: {site.bench_dir}",
    ]
    return lines


def _credential_files(ctx: RunContext) -> list[str]:
    paths = [ctx.secrets.path_for(p) for p in (ADMIN_PASSWORD, DB_ROOT_PASSWORD)]
    return [str(p) for p in paths if p.is_file()]


def _offer_rollback(ctx: RunContext) -> CleanupResult | None:
    if not ctx.ledger:
        return None
    if ctx.mode is RunMode.AUTOMATED:
        logger.warning("Automated mode: rollback skipped, completed steps left in place")
        return None
    if not ctx.prompter.confirm("Attempt rollback of completed steps?", default=True):
        logger.info("Rollback declined")
        return None
    return rollback(ctx.ledger, ctx)


def _write_history(ctx: RunContext, result: InstallResult) -> None:
    report = result.report
    entry = RunAuditEntry(
        operation="install",
        mode=ctx.mode.value,
        status="failed" if result.exit_code else (report.status if report else "ok"),
        started_at=ctx.started_at,
        ended_at=report.ended_at if report else "",
        completed=[k.value for k in ctx.ledger],
        skipped=[r.kind.value for r in report.records if r.state is StepState.SKIPPED] if report else [],
        failed=[r.kind.value for r in report.failures] if report else [],
        rolled_back=list(result.rollback.undone) if result.rollback else [],
        errors=[result.error] if result.error else [],
        context={
            "step_by_step": ctx.step_by_step,
            "account": ctx.site.account,
            "domain": ctx.site.domain,
            "failed_components": list(ctx.failed_components),
        },
    )
    RunHistory(ctx.state_dir).write(entry)


def run_install(ctx: RunContext, registry: StepRegistry | None = None) -> InstallResult:
    """Run pre-flight and every registered step.

    Never raises for provisioning errors; they are reported through
    ``InstallResult.exit_code`` / ``error``.
    """
    registry = registry or default_registry()
    result = InstallResult()
    kind = "step-by-step" if ctx.step_by_step else ctx.mode.value
    logger.info("Starting %s installation", kind)

    try:
        result.preflight = run_preflight(ctx.profile, ctx.config, ctx.prompter)
        ctx.warnings.extend(result.preflight.warnings)
        result.report = execute_run(ctx, registry)
    except ResourceError as e:
        logger.error("%s", e)
        result.error = str(e)
        result.exit_code = 1
    except ProvisionError as e:
        logger.error("Installation failed: %s", e)
        result.report = getattr(e, "report", None)
        result.error = str(e)
        result.exit_code = 1
        result.rollback = _offer_rollback(ctx)
    except KeyboardInterrupt:
        logger.error("Installation aborted by operator")
        result.error = "Aborted by operator"
        result.exit_code = 1

    if result.ok:
        # All steps are complete here; nothing past this point rolls back
        try:
            result.summary_file = ctx.secrets.write_summary(_summary_lines(ctx))
        except PersistenceError as e:
            logger.error("Could not write the credentials summary: %s", e)
            result.error = str(e)
            result.exit_code = 1

    result.site = ctx.site
    result.warnings = list(ctx.warnings)
    result.failed_components = list(ctx.failed_components)

    if result.ok:
        result.credential_files = _credential_files(ctx)
        logger.info("Installation complete: %s", ctx.site.url or "(no site)")

    _write_history(ctx, result)
    return result
