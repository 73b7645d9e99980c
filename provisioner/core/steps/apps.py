"""
Step 9 — optional Frappe apps.

Each app is fetched and installed on its own; one app failing does not
stop the others.  Failures are collected in ``ctx.failed_components``
and reported together at the end of the step.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from provisioner.core.config.loader import OPTIONAL_APPS
from provisioner.core.errors import StepFailure
from provisioner.core.models.step import StepKind
from provisioner.core.steps import catalog
from provisioner.core.steps.base import Step

if TYPE_CHECKING:
    from provisioner.core.context import RunContext

logger = logging.getLogger(__name__)

GITHUB_URL = "https://github.com/{repo}"


def app_dir(ctx: RunContext, app: str) -> str:
    return f"{ctx.site.bench_dir}/apps/{app}"


class AdditionalAppsStep(Step):
    kind = StepKind.ADDITIONAL_APPS
    title = "Install additional apps"
    fatal = False
    question = "Do you want to install additional Frappe apps?"
    question_default = False

    def already_done(self, ctx: RunContext) -> bool:
        selected = ctx.config.selected_apps
        return bool(selected) and all(ctx.host.exists(app_dir(ctx, app)) for app in selected)

    def select(self, ctx: RunContext) -> list[str]:
        """Apps to install: asked per app when interactive, else from config."""
        if not ctx.prompter.interactive:
            return ctx.config.selected_apps
        return [
            app for app in OPTIONAL_APPS
            if ctx.prompter.confirm(f"Install {app}?", default=ctx.config.install_apps.get(app, False))
        ]

    def _install(self, ctx: RunContext, app: str) -> bool:
        if not ctx.host.exists(app_dir(ctx, app)):
            repo, branch = catalog.APP_SOURCES[app]
            fetched = ctx.bench("get-app", GITHUB_URL.format(repo=repo), "--branch", branch)
            if not fetched.ok:
                ctx.warn(f"Could not fetch {app} ({fetched.describe_failure()})")
                return False

        installed = ctx.bench("--site", ctx.site.domain, "install-app", app)
        if not installed.ok:
            ctx.warn(f"Could not install {app} ({installed.describe_failure()})")
            return False
        return True

    def apply(self, ctx: RunContext) -> None:
        selected = self.select(ctx)
        if not selected:
            logger.info("No additional apps selected")
            return

        failed: list[str] = []
        for app in selected:
            logger.info("Installing %s", app)
            if self._install(ctx, app):
                ctx.site.add_app(app)
            else:
                failed.append(app)

        ctx.failed_components.extend(failed)
        ctx.site.touch()
        ctx.save_site()

        if failed:
            raise StepFailure(f"Some apps failed to install: {', '.join(failed)}", fatal=False)
        logger.info("Installed apps: %s", ", ".join(selected))
