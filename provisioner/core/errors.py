"""
Error taxonomy for provisioning runs.

Every error the orchestrator raises on purpose derives from
``ProvisionError``.  The top-level handler in the install use case
maps any of them to exit code 1.

    ProvisionError
    ├── PreconditionError      not superuser, unusable host
    ├── ResourceError          insufficient disk (or declined low RAM)
    ├── StepFailure            a step's apply() failed (fatal flag)
    ├── PersistenceError       a secret file could not be protected
    ├── ValidationError        malformed field input (stays in validation)
    └── SecretGenerationError  OS random source unavailable
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for all provisioning errors."""


class PreconditionError(ProvisionError):
    """The run cannot start on this host (e.g. not run as root)."""


class ResourceError(ProvisionError):
    """The host lacks a resource the run needs."""


class StepFailure(ProvisionError):
    """A step failed while applying its action.

    ``fatal`` is ``None`` when the step leaves the decision to the
    engine, which then uses the step's own criticality flag.
    """

    def __init__(self, message: str, *, fatal: bool | None = None, step: str = ""):
        super().__init__(message)
        self.message = message
        self.fatal = fatal
        self.step = step

    def __str__(self) -> str:
        if self.step:
            return f"{self.step}: {self.message}"
        return self.message


class PersistenceError(ProvisionError):
    """A secret could not be written with owner-only permissions."""


class ValidationError(ProvisionError):
    """A field value failed validation."""

    def __init__(self, field: str, value: str, reason: str):
        super().__init__(f"Invalid {field} {value!r}: {reason}")
        self.field = field
        self.value = value
        self.reason = reason


class SecretGenerationError(ProvisionError):
    """The OS random source is unavailable."""
