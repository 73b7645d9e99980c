"""
Step 4 — Node.js runtime and Yarn.
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

_NODE_LABELS = {
    "22": "Node.js 22 (LTS - Recommended)",
    "24": "Node.js 24 (Current)",
}


def installed_node_major(ctx: RunContext) -> str | None:
    """Major version of the installed ``node``, or None."""
    if not ctx.host.which("node"):
        return None
    result = ctx.runner.run(["node", "-v"])
    if not result.ok:
        return None
    version = result.stdout.strip().lstrip("v")
    major = version.split(".", 1)[0]
    return major if major.isdigit() else None


class RuntimeStep(Step):
    kind = StepKind.RUNTIME
    title = "Setup Node.js"

    def configure(self, ctx: RunContext) -> None:
        wanted = ctx.config.node_version
        if not wanted.isdigit():
            ctx.warn(f"Invalid node_version {wanted!r} — using {catalog.NODE_VERSIONS[0]}")
            wanted = catalog.NODE_VERSIONS[0]

        if ctx.prompter.interactive:
            options = list(catalog.NODE_VERSIONS)
            if wanted not in options:
                options.append(wanted)
            labels = [_NODE_LABELS.get(v, f"Node.js {v}") for v in options]
            wanted = options[ctx.prompter.choose("Select Node.js version", labels, options.index(wanted))]

        ctx.site.node_version = wanted

    def already_done(self, ctx: RunContext) -> bool:
        return (
            installed_node_major(ctx) == ctx.site.node_version
            and ctx.host.which("yarn") is not None
        )

    def _ensure_yarn(self, ctx: RunContext) -> None:
        if ctx.host.which("yarn"):
            return
        logger.info("Installing Yarn")
        ctx.require(ctx.runner.run(["npm", "install", "-g", "yarn"]), "Installing Yarn")

    def apply(self, ctx: RunContext) -> None:
        version = ctx.site.node_version
        current = installed_node_major(ctx)

        if current and current != version:
            if ctx.prompter.confirm(f"Node.js v{current} found. Replace with v{version}?", default=True):
                if not ctx.apt.remove(["nodejs", "npm"]).ok:
                    ctx.warn(f"Could not remove Node.js v{current}")
            else:
                logger.info("Keeping Node.js v%s", current)
                ctx.site.node_version = current
                self._ensure_yarn(ctx)
                return

        if current != version:
            logger.info("Installing Node.js v%s", version)
            url = catalog.NODESOURCE_SETUP_URL.format(version=version)
            ctx.require(
                ctx.runner.run(["bash", "-c", f"curl -fsSL {url} | bash -"]),
                "Setting up the Node.js repository",
            )
            ctx.require(ctx.apt.install(["nodejs"]), "Installing Node.js")

        self._ensure_yarn(ctx)
        logger.info("Node.js v%s and Yarn installed", version)
