"""
Step 5 — Python toolchain, Redis and supporting packages.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from provisioner.core.models.step import StepKind
from provisioner.core.steps import catalog
from provisioner.core.steps.base import Step

if TYPE_CHECKING:
    from provisioner.core.context import RunContext

logger = logging.getLogger(__name__)

_REQUIRED = (*catalog.PYTHON_PACKAGES, catalog.CACHE_PACKAGE, *catalog.SUPPORT_PACKAGES)


class CacheStep(Step):
    kind = StepKind.CACHE
    title = "Install Python, Redis and dependencies"

    def already_done(self, ctx: RunContext) -> bool:
        return not ctx.apt.missing(_REQUIRED) and ctx.host.service_active(catalog.CACHE_SERVICE)

    def _install_pdf_renderer(self, ctx: RunContext) -> None:
        # Not in trixie main; backports may carry it
        if ctx.host.package_installed(catalog.PDF_PACKAGE):
            return
        if ctx.apt.install([catalog.PDF_PACKAGE]).ok:
            return
        logger.info("%s not in the main archive, trying %s", catalog.PDF_PACKAGE, catalog.BACKPORTS_RELEASE)
        if not ctx.apt.install([catalog.PDF_PACKAGE], "-t", catalog.BACKPORTS_RELEASE).ok:
            ctx.warn(f"{catalog.PDF_PACKAGE} not installed — PDF generation will be unavailable")

    def apply(self, ctx: RunContext) -> None:
        ctx.require(ctx.apt.ensure(catalog.PYTHON_PACKAGES), "Installing Python packages")
        ctx.require(ctx.apt.ensure([catalog.CACHE_PACKAGE]), "Installing Redis")
        self._install_pdf_renderer(ctx)
        ctx.require(ctx.apt.ensure(catalog.SUPPORT_PACKAGES), "Installing supporting packages")

        ctx.require(ctx.systemd.enable(catalog.CACHE_SERVICE), "Enabling Redis")
        ctx.require(ctx.systemd.start(catalog.CACHE_SERVICE), "Starting Redis")
        logger.info("Python, Redis and dependencies installed")
