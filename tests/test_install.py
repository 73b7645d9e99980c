"""
Tests for the install, uninstall and check use cases.
"""

import os
import stat
from pathlib import Path

from provisioner.core.errors import PersistenceError
from provisioner.core.models.host import HostProfile
from provisioner.core.models.run import RunMode
from provisioner.core.models.secret import ADMIN_PASSWORD, DB_ROOT_PASSWORD
from provisioner.core.models.site import InstalledSite
from provisioner.core.models.step import StepKind
from provisioner.core.persistence.audit import RunHistory
from provisioner.core.persistence.state_file import load_site, save_site, site_path
from provisioner.core.services.prompter import AutoPrompter
from provisioner.core.services.secret_store import SecretStore
from provisioner.core.steps.registry import default_registry
from provisioner.core.use_cases.check import run_check
from provisioner.core.use_cases.install import build_context, run_install
from provisioner.core.use_cases.uninstall import run_uninstall


def _ctx(mode, config, host, runner, profile, prompter=None, **kwargs):
    return build_context(
        mode,
        config,
        host=host,
        runner=runner,
        prompter=prompter or AutoPrompter(),
        profile=profile,
        **kwargs,
    )


class TestQuickRun:
    def test_every_step_completes(self, config, host, runner, healthy_profile):
        ctx = _ctx(RunMode.QUICK, config, host, runner, healthy_profile)
        result = run_install(ctx)

        assert result.exit_code == 0
        assert len(ctx.ledger) == len(default_registry())
        assert ctx.ledger == list(StepKind)
        assert result.report.status == "ok"
        assert ctx.site.domain == "site1.local"

    def test_credentials_owner_only(self, config, host, runner, healthy_profile):
        ctx = _ctx(RunMode.QUICK, config, host, runner, healthy_profile)
        result = run_install(ctx)

        admin_file = Path(config.credentials_dir) / ADMIN_PASSWORD
        assert admin_file.is_file()
        assert stat.S_IMODE(os.stat(admin_file).st_mode) == 0o600
        assert stat.S_IMODE(os.stat(result.summary_file).st_mode) == 0o600
        assert str(admin_file) in result.credential_files

    def test_summary_lists_credentials(self, config, host, runner, healthy_profile):
        ctx = _ctx(RunMode.QUICK, config, host, runner, healthy_profile)
        result = run_install(ctx)

        summary = result.summary_file.read_text()
        assert ctx.secrets.load(ADMIN_PASSWORD).reveal() in summary
        assert ctx.secrets.load(DB_ROOT_PASSWORD).reveal() in summary
        assert "http://site1.local" in summary

    def test_site_record_and_history(self, config, host, runner, healthy_profile):
        run_install(_ctx(RunMode.QUICK, config, host, runner, healthy_profile))

        site = load_site(site_path(Path(config.state_dir)))
        assert site.account == "frappe"
        assert site.domain == "site1.local"
        entry = RunHistory(Path(config.state_dir)).read_all()[-1]
        assert entry.operation == "install"
        assert entry.status == "ok"
        assert len(entry.completed) == len(StepKind)

    def test_second_run_reuses_secrets(self, config, host, runner, healthy_profile):
        first = _ctx(RunMode.QUICK, config, host, runner, healthy_profile)
        run_install(first)
        password = first.secrets.load(ADMIN_PASSWORD).reveal()

        second = _ctx(RunMode.QUICK, config, host, runner, healthy_profile)
        run_install(second)
        assert second.secrets.load(ADMIN_PASSWORD).reveal() == password


class TestPreflightFailures:
    def test_low_disk_before_any_step_or_secret(self, config, host, runner):
        profile = HostProfile(os_id="debian", os_version="13", ram_total_mb=8192, disk_free_mb=1024)
        ctx = _ctx(RunMode.AUTOMATED, config, host, runner, profile)
        result = run_install(ctx)

        assert result.exit_code == 1
        assert "disk" in result.error
        assert runner.call_count == 0
        assert not Path(config.credentials_dir).exists()
        assert result.rollback is None


class TestFatalFailure:
    def test_quick_mode_rolls_back(self, config, host, runner, healthy_profile):
        runner.fail_on(["bench", "init"])
        ctx = _ctx(RunMode.QUICK, config, host, runner, healthy_profile)
        result = run_install(ctx)

        assert result.exit_code == 1
        assert "bench init" in result.error
        assert result.rollback is not None
        assert result.rollback.undone[0] == StepKind.CACHE.value
        assert runner.ran("userdel", "-r", "frappe")
        assert result.summary_file is None

    def test_automated_mode_skips_rollback(self, config, host, runner, healthy_profile):
        runner.fail_on(["bench", "init"])
        ctx = _ctx(RunMode.AUTOMATED, config, host, runner, healthy_profile)
        result = run_install(ctx)

        assert result.exit_code == 1
        assert result.rollback is None
        assert not runner.ran("userdel")
        assert RunHistory(Path(config.state_dir)).read_all()[-1].status == "failed"

    def test_interactive_rollback_declined(self, config, host, runner, healthy_profile, scripted):
        runner.fail_on(["bench", "init"])
        prompter = scripted(confirms={"rollback": False})
        ctx = _ctx(RunMode.INTERACTIVE, config, host, runner, healthy_profile, prompter=prompter)
        result = run_install(ctx)

        assert result.exit_code == 1
        assert result.rollback is None
        assert any("rollback" in q for q in prompter.asked)

    def test_recoverable_failure_still_succeeds(self, config, host, runner, healthy_profile):
        runner.fail_on(["ufw", "--force", "enable"])
        ctx = _ctx(RunMode.QUICK, config, host, runner, healthy_profile)
        result = run_install(ctx)

        assert result.exit_code == 0
        assert result.report.status == "partial"
        assert StepKind.FIREWALL not in ctx.ledger

    def test_summary_failure_keeps_completed_steps(self, config, host, runner, healthy_profile, monkeypatch):
        def _fail(self, lines):
            raise PersistenceError("Cannot write summary")

        monkeypatch.setattr(SecretStore, "write_summary", _fail)
        ctx = _ctx(RunMode.QUICK, config, host, runner, healthy_profile)
        result = run_install(ctx)

        assert result.exit_code == 1
        assert "Cannot write summary" in result.error
        assert result.rollback is None
        assert ctx.ledger == list(StepKind)
        assert not runner.ran("userdel")


class TestStepByStep:
    def test_declined_steps_skipped(self, config, host, runner, healthy_profile, scripted):
        prompter = scripted(confirms={"Step 1:": False, "Setup UFW": False})
        ctx = _ctx(
            RunMode.INTERACTIVE, config, host, runner, healthy_profile,
            prompter=prompter, step_by_step=True,
        )
        result = run_install(ctx)

        assert result.exit_code == 0
        assert StepKind.PREPARE_SYSTEM not in ctx.ledger
        assert StepKind.FIREWALL not in ctx.ledger
        assert StepKind.SITE in ctx.ledger


class TestUninstall:
    def test_uses_saved_site(self, config, host, runner, healthy_profile):
        save_site(
            InstalledSite(account="erpuser", home="/home/erpuser", domain="erp.local"),
            site_path(Path(config.state_dir)),
        )
        host.users["erpuser"] = "/home/erpuser"
        ctx = _ctx(RunMode.INTERACTIVE, config, host, runner, healthy_profile)

        result = run_uninstall(ctx, assume_yes=True)

        assert result.confirmed
        assert result.exit_code == 0
        assert runner.ran("userdel", "-r", "erpuser")
        assert RunHistory(Path(config.state_dir)).read_all()[-1].operation == "uninstall"

    def test_declined(self, config, host, runner, healthy_profile, scripted):
        ctx = _ctx(RunMode.INTERACTIVE, config, host, runner, healthy_profile, prompter=scripted())
        result = run_uninstall(ctx)
        assert not result.confirmed
        assert runner.call_count == 0

    def test_defaults_to_configured_account(self, config, host, runner, healthy_profile):
        ctx = _ctx(RunMode.INTERACTIVE, config, host, runner, healthy_profile)
        result = run_uninstall(ctx, assume_yes=True)
        assert result.account == "frappe"


class TestCheck:
    def test_healthy(self, config, healthy_profile):
        result = run_check(healthy_profile, config)
        assert result.ok
        assert result.warnings == []

    def test_low_disk_is_error(self, config):
        result = run_check(HostProfile(os_id="debian", os_version="13", ram_total_mb=8192), config)
        assert not result.ok
        assert "Insufficient disk space" in result.errors[0]
