"""
Check use case — pre-flight report without changing anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from provisioner.core.config.loader import ProvisionConfig
from provisioner.core.errors import ResourceError
from provisioner.core.models.host import HostProfile
from provisioner.core.models.site import InstalledSite
from provisioner.core.persistence.audit import RunAuditEntry, RunHistory
from provisioner.core.persistence.state_file import load_site, site_path
from provisioner.core.services.preflight import check_disk, check_host_identity, check_memory


@dataclass
class CheckResult:
    profile: HostProfile
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    site: InstalledSite | None = None
    recent_runs: list[RunAuditEntry] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "host": self.profile.model_dump(),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "site": self.site.model_dump(mode="json") if self.site else None,
            "recent_runs": [r.model_dump(mode="json") for r in self.recent_runs],
        }


def run_check(profile: HostProfile, config: ProvisionConfig, history: int = 5) -> CheckResult:
    """Evaluate every pre-flight rule and collect the outcome."""
    result = CheckResult(profile=profile)

    identity = check_host_identity(profile, config)
    if identity:
        result.warnings.append(identity)

    try:
        check_disk(profile, config)
    except ResourceError as e:
        result.errors.append(str(e))

    memory = check_memory(profile, config)
    if memory:
        result.warnings.append(memory)

    state_dir = Path(config.state_dir)
    result.site = load_site(site_path(state_dir))
    result.recent_runs = RunHistory(state_dir).read_recent(history)
    return result
