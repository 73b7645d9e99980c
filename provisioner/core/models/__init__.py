"""
Domain models — pydantic records and run-time dataclasses.
"""

from provisioner.core.models.command import CommandResult
from provisioner.core.models.host import HostProfile
from provisioner.core.models.run import RunMode, RunReport
from provisioner.core.models.secret import Charset, Secret, SecretMethod
from provisioner.core.models.site import InstalledSite
from provisioner.core.models.step import StepKind, StepRecord, StepState

__all__ = [
    "Charset",
    "CommandResult",
    "HostProfile",
    "InstalledSite",
    "RunMode",
    "RunReport",
    "Secret",
    "SecretMethod",
    "StepKind",
    "StepRecord",
    "StepState",
]
