"""
ERPNext provisioner — CLI entrypoint.

Usage:
    erp-provision --help
    erp-provision run                  interactive menu
    erp-provision run --quick          defaults, site1.local
    erp-provision run --automated      unattended, honours ERPNEXT_* env vars
    erp-provision uninstall [--yes]
    erp-provision check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import setup_logging

LOG_LEVEL_ENV = "ERP_PROVISION_LOG_LEVEL"


# ── Usage errors exit 1 ─────────────────────────────────────────────


class ProvisionCommand(click.Command):
    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


class ProvisionGroup(click.Group):
    command_class = ProvisionCommand

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise

    def resolve_command(self, ctx: click.Context, args: list[str]):
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


# ── Shared setup ────────────────────────────────────────────────────


def _fail(message: str) -> None:
    click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(1)


def _require_superuser() -> None:
    from provisioner.core.errors import PreconditionError
    from provisioner.core.services import host_probe

    try:
        if not host_probe.is_superuser():
            raise PreconditionError("This command must be run as root")
    except PreconditionError as e:
        _fail(str(e))


def _prepare(ctx: click.Context):
    """Load config and configure logging.  Exits 1 on a config error."""
    from provisioner.core.config.loader import ConfigError, load_config

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        _fail(str(e))

    if ctx.obj.get("debug"):
        level = "DEBUG"
    elif ctx.obj.get("verbose"):
        level = "INFO"
    else:
        level = os.environ.get(LOG_LEVEL_ENV) or config.log_level or "INFO"

    setup_logging(level=level, log_file=config.log_file or None)
    return config


def _adapters(ctx: click.Context):
    """Runner, host and host profile — injectable through ``ctx.obj``."""
    from provisioner.adapters.host import SystemHost
    from provisioner.adapters.shell.command import CommandRunner
    from provisioner.core.services.host_probe import probe_host

    runner = ctx.obj.get("runner") or CommandRunner()
    host = ctx.obj.get("host") or SystemHost(runner)
    profile = ctx.obj.get("profile") or probe_host()
    return runner, host, profile


# ── Group ───────────────────────────────────────────────────────────


@click.group(cls=ProvisionGroup)
@click.version_option(version=__version__, prog_name="erp-provision")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to provision.yml (default: ./provision.yml, then /etc/erpnext-provision.yml).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool, config_path: str | None) -> None:
    """ERPNext provisioner — install ERPNext v15 on Debian."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None


# ── run ─────────────────────────────────────────────────────────────


@cli.command()
@click.option("--quick", is_flag=True, help="Install with defaults (site1.local), no questions.")
@click.option(
    "--silent",
    "--automated",
    "automated",
    is_flag=True,
    help="Unattended install; honours ERPNEXT_DOMAIN, ERPNEXT_ADMIN_PASSWORD, "
    "MARIADB_ROOT_PASSWORD and FRAPPE_USER.",
)
@click.pass_context
def run(ctx: click.Context, quick: bool, automated: bool) -> None:
    """Install ERPNext.

    Without a mode flag an interactive menu is shown.

    Examples:

        erp-provision run

        erp-provision run --quick

        ERPNEXT_DOMAIN=erp.example.com erp-provision run --automated
    """
    from provisioner.core.models.run import RunMode
    from provisioner.core.services.prompter import AutoPrompter
    from provisioner.core.use_cases.install import build_context, run_install
    from provisioner.ui.cli.menu import MenuChoice, show_menu
    from provisioner.ui.cli.prompts import ClickPrompter

    if quick and automated:
        _fail("Choose either --quick or --automated, not both")

    _require_superuser()
    config = _prepare(ctx)

    step_by_step = False
    if automated:
        mode, prompter = RunMode.AUTOMATED, AutoPrompter()
    elif quick:
        mode, prompter = RunMode.QUICK, AutoPrompter()
    else:
        choice = show_menu()
        if choice is MenuChoice.EXIT:
            click.echo("Bye.")
            return
        if choice is MenuChoice.REMOVE:
            _do_uninstall(ctx, config, assume_yes=False)
            return
        mode, prompter = RunMode.INTERACTIVE, ClickPrompter()
        step_by_step = choice is MenuChoice.STEP_BY_STEP

    runner, host, profile = _adapters(ctx)
    run_ctx = build_context(
        mode,
        config,
        host=host,
        runner=runner,
        prompter=prompter,
        profile=profile,
        step_by_step=step_by_step,
        environ=ctx.obj.get("environ", os.environ),
    )
    result = run_install(run_ctx)
    _render_install(result, verbose=ctx.obj.get("verbose", False), log_file=config.log_file)

    if result.exit_code:
        sys.exit(result.exit_code)


def _render_install(result, verbose: bool, log_file: str) -> None:
    report = result.report

    if report and verbose:
        click.echo()
        icons = {"done": ("✓", "green"), "skipped": ("⊘", "yellow"), "failed": ("✗", "red")}
        for record in report.records:
            icon, color = icons.get(record.state.value, ("·", "white"))
            reason = f" ({record.reason})" if record.reason else ""
            click.secho(f"   {icon} {record.position:>2}. {record.title}", fg=color, nl=False)
            click.echo(reason)

    if result.rollback:
        click.echo()
        click.secho(
            f"↩️  Rolled back: {', '.join(result.rollback.undone) or 'nothing'}",
            fg="yellow",
        )
        if result.rollback.failed:
            click.secho(f"   Could not undo: {', '.join(result.rollback.failed)}", fg="red")

    if result.error:
        click.echo()
        click.secho(f"❌ {result.error}", fg="red", bold=True)
        click.echo(f"   Log: {log_file}")
        return

    site = result.site
    click.echo()
    click.secho("✅ Installation Complete!", fg="green", bold=True)
    click.echo()
    click.secho("   Access Information:", fg="cyan", bold=True)
    click.echo(f"   • ERPNext URL: {site.url}")
    click.echo("   • Admin Username: Administrator")
    click.echo(f"   • Credentials summary: {result.summary_file}")
    for path in result.credential_files:
        click.echo(f"   • Credential file: {path}")
    click.echo(f"   • Frappe user: {site.account}")
    click.echo(f"   • Bench directory: {site.bench_dir}")

    if result.failed_components:
        click.echo()
        click.secho(
            f"⚠️  Not installed: {', '.join(result.failed_components)}",
            fg="yellow",
        )

    if result.warnings:
        click.echo()
        click.secho(f"⚠️  {len(result.warnings)} warning(s):", fg="yellow")
        for warning in result.warnings:
            click.echo(f"   • {warning}")

    click.echo()
    click.secho("   Security recommendations:", fg="yellow", bold=True)
    click.echo("   • Change the admin password after first login")
    click.echo(f"   • Set up SSL: bench setup add-domain {site.domain} --ssl-certificate")
    click.echo("   • Configure Fail2Ban and disable root SSH login")
    click.echo()
    click.secho("   Useful commands:", fg="cyan", bold=True)
    click.echo(f"   • Start bench: su - {site.account} -c 'cd frappe-bench && bench start'")
    click.echo(f"   • View log: tail -f {log_file}")
    click.echo()


# ── uninstall ───────────────────────────────────────────────────────


def _do_uninstall(ctx: click.Context, config, assume_yes: bool) -> None:
    from provisioner.core.models.run import RunMode
    from provisioner.core.use_cases.install import build_context
    from provisioner.core.use_cases.uninstall import run_uninstall
    from provisioner.ui.cli.prompts import ClickPrompter

    runner, host, profile = _adapters(ctx)
    run_ctx = build_context(
        RunMode.INTERACTIVE,
        config,
        host=host,
        runner=runner,
        prompter=ClickPrompter(),
        profile=profile,
    )
    try:
        result = run_uninstall(run_ctx, assume_yes=assume_yes)
    except KeyboardInterrupt:
        _fail("Aborted by operator")

    cleanup = result.cleanup
    if cleanup is None:
        click.secho("Uninstall cancelled.", fg="yellow")
        return

    click.echo()
    for label in cleanup.undone:
        click.secho(f"   ✓ {label}", fg="green")
    for error in cleanup.errors:
        click.secho(f"   ✗ {error}", fg="red")
    click.echo()

    if cleanup.ok:
        click.secho(f"✅ Installation for {result.account} removed", fg="green", bold=True)
    else:
        click.secho("⚠️  Removal finished with errors", fg="yellow", bold=True)
        sys.exit(1)


@cli.command("uninstall")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def uninstall_cmd(ctx: click.Context, assume_yes: bool) -> None:
    """Remove an existing installation (bench, user, credentials)."""
    _require_superuser()
    config = _prepare(ctx)
    _do_uninstall(ctx, config, assume_yes=assume_yes)


# ── check ───────────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, as_json: bool) -> None:
    """Report whether this host meets the requirements (changes nothing)."""
    from provisioner.core.services.host_probe import probe_host
    from provisioner.core.use_cases.check import run_check

    config = _prepare(ctx)
    profile = ctx.obj.get("profile") or probe_host()
    result = run_check(profile, config)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    click.secho(f"\n🔍 {profile.display_name}", fg="cyan", bold=True)
    click.echo(f"   RAM: {profile.ram_gb:g}GB (minimum {config.min_ram_gb:g}GB)")
    click.echo(f"   Free disk: {profile.disk_free_gb:g}GB (minimum {config.min_disk_gb:g}GB)")

    if result.site:
        click.echo(f"   Installed: {result.site.url or '(no site)'} as {result.site.account}")

    if result.recent_runs:
        last = result.recent_runs[-1]
        color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(last.status, "white")
        click.echo(f"   Last run: {last.operation} ({last.mode}) — ", nl=False)
        click.secho(last.status, fg=color)

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warning in result.warnings:
            click.echo(f"   • {warning}")

    if not result.ok:
        click.echo()
        click.secho("❌ Requirements not met:", fg="red", bold=True)
        for error in result.errors:
            click.echo(f"   • {error}")
        click.echo()
        sys.exit(1)

    click.echo()
    click.secho("✅ Host meets the requirements", fg="green", bold=True)
    click.echo()


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
