"""
Provisioning steps — one module per step, ordered by ``registry``.
"""

from __future__ import annotations

from .base import Step
from .registry import StepRegistry, default_registry, default_steps

__all__ = [
    "Step",
    "StepRegistry",
    "default_registry",
    "default_steps",
]
