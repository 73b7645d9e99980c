"""
Run context — everything a step may read or change during one run.

Steps receive the context explicitly and go through it for every
side effect: commands via ``runner``, host queries via ``host``,
questions via ``prompter``, credentials via ``secrets``.  Nothing is
shared through module globals.

Built once by the install use case (or by tests), discarded at exit.
The ledger lives here and only here: it is not written to disk, a
re-run rediscovers what is done through the steps' predicates.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from provisioner.adapters.base import Host, Runner
from provisioner.adapters.system.apt import Apt
from provisioner.adapters.system.systemd import Systemd
from provisioner.core.config.loader import ProvisionConfig
from provisioner.core.errors import StepFailure
from provisioner.core.models.command import CommandResult
from provisioner.core.models.host import HostProfile
from provisioner.core.models.run import RunMode
from provisioner.core.models.site import InstalledSite
from provisioner.core.models.step import StepKind
from provisioner.core.persistence.state_file import save_site, site_path
from provisioner.core.services.prompter import Prompter
from provisioner.core.services.secret_store import SecretStore

logger = logging.getLogger(__name__)

# Environment overrides honoured in automated mode
ENV_DOMAIN = "ERPNEXT_DOMAIN"
ENV_ADMIN_PASSWORD = "ERPNEXT_ADMIN_PASSWORD"
ENV_DB_ROOT_PASSWORD = "MARIADB_ROOT_PASSWORD"
ENV_ACCOUNT = "FRAPPE_USER"


@dataclass
class RunContext:
    mode: RunMode
    config: ProvisionConfig
    host: Host
    runner: Runner
    prompter: Prompter
    secrets: SecretStore
    profile: HostProfile = field(default_factory=HostProfile)
    step_by_step: bool = False
    environ: Mapping[str, str] = field(default_factory=dict)

    site: InstalledSite = field(default_factory=InstalledSite)
    ledger: list[StepKind] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failed_components: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def __post_init__(self) -> None:
        self.apt = Apt(self.runner, self.host)
        self.systemd = Systemd(self.runner)

    # ── Inputs ─────────────────────────────────────────────────

    def env_value(self, name: str) -> str | None:
        """Environment override, honoured only in automated mode."""
        if self.mode is not RunMode.AUTOMATED:
            return None
        value = self.environ.get(name, "").strip()
        return value or None

    @property
    def default_domain(self) -> str:
        if self.mode is RunMode.QUICK:
            return self.config.quick_domain
        return self.config.default_domain

    @property
    def state_dir(self) -> Path:
        return Path(self.config.state_dir)

    # ── Outcome helpers ────────────────────────────────────────

    def require(self, result: CommandResult, what: str) -> CommandResult:
        """Raise StepFailure unless ``result`` succeeded."""
        if not result.ok:
            raise StepFailure(f"{what} failed ({result.describe_failure()})")
        return result

    def warn(self, message: str) -> None:
        """Log a warning and keep it for the final summary."""
        logger.warning(message)
        self.warnings.append(message)

    # ── Account-scoped execution ───────────────────────────────

    def as_account(
        self,
        command: Sequence[str],
        *,
        in_bench: bool = True,
        input: str | None = None,
        cwd: str | None = None,
    ) -> CommandResult:
        """Run ``command`` as the service account.

        By default the working directory is the bench directory.
        """
        if not self.site.account:
            raise StepFailure("No service account has been configured yet")
        if cwd is None and in_bench:
            cwd = self.site.bench_dir
        return self.runner.run(command, user=self.site.account, cwd=cwd, input=input)

    def bench(self, *args: str, input: str | None = None) -> CommandResult:
        """Run a ``bench`` sub-command as the account inside the bench."""
        return self.as_account(["bench", *args], input=input)

    def save_site(self) -> None:
        try:
            save_site(self.site, site_path(self.state_dir))
        except OSError as e:
            self.warn(f"Could not save site record: {e}")
