"""
Step registry — the fixed, ordered list of provisioning steps.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from provisioner.core.models.step import StepKind
from provisioner.core.steps.account import ServiceAccountStep
from provisioner.core.steps.apps import AdditionalAppsStep
from provisioner.core.steps.base import Step
from provisioner.core.steps.cache import CacheStep
from provisioner.core.steps.database import DatabaseStep
from provisioner.core.steps.firewall import FirewallStep
from provisioner.core.steps.framework import FrameworkStep
from provisioner.core.steps.production import ProductionStep
from provisioner.core.steps.runtime import RuntimeStep
from provisioner.core.steps.site import SiteStep
from provisioner.core.steps.system import PrepareSystemStep
from provisioner.core.steps.verify import VerifyServicesStep


def default_steps() -> list[Step]:
    """All built-in steps, in execution order."""
    return [
        PrepareSystemStep(),
        ServiceAccountStep(),
        DatabaseStep(),
        RuntimeStep(),
        CacheStep(),
        FrameworkStep(),
        SiteStep(),
        VerifyServicesStep(),
        AdditionalAppsStep(),
        ProductionStep(),
        FirewallStep(),
    ]


class StepRegistry:
    """Ordered collection of steps, at most one per kind."""

    def __init__(self, steps: Iterable[Step]):
        self._steps: list[Step] = []
        seen: set[StepKind] = set()
        for step in steps:
            if step.kind in seen:
                raise ValueError(f"Duplicate step kind: {step.kind.value}")
            seen.add(step.kind)
            self._steps.append(step)

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def get(self, kind: StepKind) -> Step | None:
        for step in self._steps:
            if step.kind is kind:
                return step
        return None

    def positions(self) -> Iterator[tuple[int, Step]]:
        """``(1-based position, step)`` pairs."""
        return enumerate(self._steps, start=1)


def default_registry() -> StepRegistry:
    return StepRegistry(default_steps())
