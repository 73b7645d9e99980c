"""
Step 1 — system preparation.

Enables the contrib/non-free components on Debian 13 (several packages
the stack needs live there), refreshes the package lists, optionally
upgrades, and installs the base utilities.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from provisioner.core.models.step import StepKind
from provisioner.core.steps import catalog
from provisioner.core.steps.base import Step

if TYPE_CHECKING:
    from provisioner.core.context import RunContext

logger = logging.getLogger(__name__)

_DEB822_COMPONENTS = re.compile(r"^(Components:\s*main)[ \t]*$", re.MULTILINE)
_LEGACY_MAIN = re.compile(r"^(deb(?:-src)?\s.*\smain)[ \t]*$", re.MULTILINE)


def _sources_file(ctx: RunContext) -> str | None:
    for path in (catalog.APT_SOURCES_DEB822, catalog.APT_SOURCES_LEGACY):
        if ctx.host.exists(path):
            return path
    return None


def _fixed_sources(path: str, content: str) -> str:
    if path == catalog.APT_SOURCES_DEB822:
        return _DEB822_COMPONENTS.sub(rf"\1 {catalog.EXTRA_COMPONENTS}", content)
    return _LEGACY_MAIN.sub(rf"\1 {catalog.EXTRA_COMPONENTS}", content)


def repositories_need_fix(ctx: RunContext) -> bool:
    if not ctx.profile.matches("debian", "13"):
        return False
    path = _sources_file(ctx)
    if path is None:
        return False
    content = ctx.host.read_text(path) or ""
    return "contrib" not in content and _fixed_sources(path, content) != content


class PrepareSystemStep(Step):
    kind = StepKind.PREPARE_SYSTEM
    title = "Prepare system"

    def already_done(self, ctx: RunContext) -> bool:
        return not repositories_need_fix(ctx) and not ctx.apt.missing(catalog.BASE_PACKAGES)

    def _fix_repositories(self, ctx: RunContext) -> None:
        result = ctx.apt.install(catalog.REPO_PREREQUISITES, "--no-install-recommends")
        if not result.ok:
            ctx.warn(f"Could not install {', '.join(catalog.REPO_PREREQUISITES)}")

        path = _sources_file(ctx)
        if path is None or not repositories_need_fix(ctx):
            return

        content = ctx.host.read_text(path) or ""
        ctx.host.write_text(f"{path}.backup", content)
        ctx.host.write_text(path, _fixed_sources(path, content))
        logger.info("Added %s components to %s", catalog.EXTRA_COMPONENTS, path)

        if not ctx.apt.update("--allow-releaseinfo-change").ok and not ctx.apt.update().ok:
            ctx.warn("Failed to update package lists after repository change")

    def apply(self, ctx: RunContext) -> None:
        self._fix_repositories(ctx)

        if ctx.prompter.confirm("Update system packages?", default=True):
            logger.info("Updating package lists")
            ctx.require(ctx.apt.update(), "Updating package lists")
            if not ctx.apt.upgrade().ok:
                ctx.warn("Some packages failed to upgrade")

        ctx.require(ctx.apt.ensure(catalog.BASE_PACKAGES), "Installing base utilities")
        logger.info("System preparation complete")
