"""
Pre-flight checks — run once before the first step.

    host identity   mismatch is a warning, never a blocker
    free disk       below the minimum is always fatal (ResourceError)
    memory          below the minimum: interactive runs ask "Continue
                    anyway?" (default no); unattended runs warn and go on

Disk is checked before memory so an operator is never asked to accept
low memory on a host that cannot be provisioned anyway.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from provisioner.core.config.loader import ProvisionConfig
from provisioner.core.errors import ResourceError
from provisioner.core.models.host import HostProfile
from provisioner.core.services.prompter import Prompter

logger = logging.getLogger(__name__)


@dataclass
class PreflightResult:
    profile: HostProfile
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "host": self.profile.model_dump(),
            "warnings": list(self.warnings),
        }


def check_host_identity(profile: HostProfile, config: ProvisionConfig) -> str | None:
    if profile.matches(config.target_os_id, config.target_os_version):
        return None
    return (
        f"This installer targets {config.target_os_id} {config.target_os_version}. "
        f"Detected: {profile.display_name}"
    )


def check_disk(profile: HostProfile, config: ProvisionConfig) -> None:
    if profile.disk_free_gb < config.min_disk_gb:
        raise ResourceError(
            f"Insufficient disk space. Need {config.min_disk_gb:g}GB+, "
            f"have {profile.disk_free_gb:g}GB"
        )


def check_memory(profile: HostProfile, config: ProvisionConfig) -> str | None:
    if profile.ram_gb < config.min_ram_gb:
        return f"System has {profile.ram_gb:g}GB RAM. Recommended: {config.min_ram_gb:g}GB+"
    return None


def run_preflight(
    profile: HostProfile,
    config: ProvisionConfig,
    prompter: Prompter,
) -> PreflightResult:
    """Run all pre-flight checks.

    Raises:
        ResourceError: Not enough free disk, or the operator declined to
            continue with too little memory.
    """
    logger.info("Checking system requirements")
    result = PreflightResult(profile=profile)

    identity = check_host_identity(profile, config)
    if identity:
        logger.warning(identity)
        result.warnings.append(identity)

    check_disk(profile, config)

    memory = check_memory(profile, config)
    if memory:
        logger.warning(memory)
        result.warnings.append(memory)
        if prompter.interactive and not prompter.confirm("Continue anyway?", default=False):
            raise ResourceError(f"Aborted by operator: {memory}")

    logger.info("System requirements check passed")
    return result
