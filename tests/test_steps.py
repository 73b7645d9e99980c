"""
Tests for individual step definitions against the fake host.
"""

import pytest

from provisioner.core.errors import StepFailure
from provisioner.core.models.run import RunMode
from provisioner.core.models.secret import ADMIN_PASSWORD, DB_ROOT_PASSWORD
from provisioner.core.steps import catalog
from provisioner.core.steps.account import ServiceAccountStep
from provisioner.core.steps.apps import AdditionalAppsStep
from provisioner.core.steps.cache import CacheStep
from provisioner.core.steps.database import DatabaseStep
from provisioner.core.steps.firewall import FirewallStep
from provisioner.core.steps.framework import FrameworkStep
from provisioner.core.steps.production import ProductionStep
from provisioner.core.steps.runtime import RuntimeStep
from provisioner.core.steps.site import SiteStep
from provisioner.core.steps.system import PrepareSystemStep
from provisioner.core.steps.verify import VerifyServicesStep


def _with_account(ctx, account="frappe"):
    ctx.site.account = account
    ctx.site.home = f"/home/{account}"
    return ctx


class TestPrepareSystem:
    def test_already_done(self, make_ctx, host):
        host.packages.update(catalog.BASE_PACKAGES)
        assert PrepareSystemStep().already_done(make_ctx())

    def test_missing_package_not_done(self, make_ctx, host):
        host.packages.update(catalog.BASE_PACKAGES[1:])
        assert not PrepareSystemStep().already_done(make_ctx())

    def test_fixes_deb822_sources(self, make_ctx, host):
        host.files[catalog.APT_SOURCES_DEB822] = "Types: deb\nComponents: main\n"
        ctx = make_ctx()
        step = PrepareSystemStep()
        assert not step.already_done(ctx)

        step.apply(ctx)

        assert host.files[f"{catalog.APT_SOURCES_DEB822}.backup"] == "Types: deb\nComponents: main\n"
        assert f"Components: main {catalog.EXTRA_COMPONENTS}" in host.files[catalog.APT_SOURCES_DEB822]

    def test_sources_already_fixed_left_alone(self, make_ctx, host):
        fixed = f"Types: deb\nComponents: main {catalog.EXTRA_COMPONENTS}\n"
        host.files[catalog.APT_SOURCES_DEB822] = fixed
        PrepareSystemStep().apply(make_ctx())
        assert host.files[catalog.APT_SOURCES_DEB822] == fixed
        assert f"{catalog.APT_SOURCES_DEB822}.backup" not in host.files

    def test_no_sources_file(self, make_ctx, host):
        PrepareSystemStep().apply(make_ctx())
        assert not any(path.endswith(".backup") for path in host.files)

    def test_installs_base_packages(self, make_ctx, runner):
        PrepareSystemStep().apply(make_ctx())
        assert runner.ran("apt-get", "update")
        assert runner.ran("apt-get", "install", "-y", *catalog.BASE_PACKAGES)

    def test_update_declined(self, make_ctx, runner, scripted):
        prompter = scripted(confirms={"Update system packages": False})
        PrepareSystemStep().apply(make_ctx(mode=RunMode.INTERACTIVE, prompter=prompter))
        assert not runner.ran("apt-get", "upgrade")

    def test_base_install_failure_raises(self, make_ctx, runner):
        runner.fail_on(["apt-get", "install", "-y", *catalog.BASE_PACKAGES])
        with pytest.raises(StepFailure, match="base utilities"):
            PrepareSystemStep().apply(make_ctx())


class TestServiceAccount:
    def test_account_from_environment(self, make_ctx):
        ctx = make_ctx(environ={"FRAPPE_USER": "erpuser"})
        ServiceAccountStep().configure(ctx)
        assert ctx.site.account == "erpuser"
        assert ctx.site.home == "/home/erpuser"

    def test_environment_ignored_outside_automated(self, make_ctx):
        ctx = make_ctx(mode=RunMode.QUICK, environ={"FRAPPE_USER": "erpuser"})
        ServiceAccountStep().configure(ctx)
        assert ctx.site.account == "frappe"

    def test_invalid_account_falls_back(self, make_ctx):
        ctx = make_ctx(environ={"FRAPPE_USER": "Bad Name"})
        ServiceAccountStep().configure(ctx)
        assert ctx.site.account == "frappe"

    def test_already_done(self, make_ctx, host):
        host.users["frappe"] = "/home/frappe"
        ctx = make_ctx()
        step = ServiceAccountStep()
        step.configure(ctx)
        assert step.already_done(ctx)

    def test_apply_limited_sudo(self, make_ctx, runner, host):
        ctx = _with_account(make_ctx())
        ServiceAccountStep().apply(ctx)

        assert runner.ran("adduser", "--disabled-password")
        assert runner.ran("usermod", "-aG", "sudo", "frappe")
        assert runner.ran("visudo", "-cf", "/etc/sudoers.d/frappe")
        assert "systemctl" in host.files["/etc/sudoers.d/frappe"]
        assert "NOPASSWD: ALL" not in host.files["/etc/sudoers.d/frappe"]
        assert host.modes["/etc/sudoers.d/frappe"] == 0o440

    def test_invalid_sudoers_removed(self, make_ctx, runner, host):
        runner.fail_on(["visudo"])
        ctx = _with_account(make_ctx())
        with pytest.raises(StepFailure, match="invalid"):
            ServiceAccountStep().apply(ctx)
        assert "/etc/sudoers.d/frappe" not in host.files


class TestDatabase:
    def test_password_never_in_argv(self, make_ctx, runner):
        ctx = make_ctx()
        DatabaseStep().apply(ctx)

        password = ctx.secrets.load(DB_ROOT_PASSWORD).reveal()
        assert all(password not in " ".join(c.command) for c in runner.calls)
        assert any(c.input and password in c.input for c in runner.calls)

    def test_hardening_uses_env(self, make_ctx, runner):
        ctx = make_ctx()
        DatabaseStep().apply(ctx)
        hardening = [c for c in runner.calls if c.input == catalog.DATABASE_HARDENING_SQL]
        assert hardening and "MYSQL_PWD" in hardening[0].env

    def test_writes_config_and_restarts(self, make_ctx, runner, host):
        DatabaseStep().apply(make_ctx())
        assert host.files[catalog.DATABASE_CONFIG] == catalog.DATABASE_CONFIG_CONTENT
        assert runner.commands[-1] == ["systemctl", "restart", "mariadb"]

    def test_supplied_password_used(self, make_ctx):
        ctx = make_ctx(environ={"MARIADB_ROOT_PASSWORD": "from-env-pw"})
        DatabaseStep().apply(ctx)
        assert ctx.secrets.load(DB_ROOT_PASSWORD).reveal() == "from-env-pw"

    def test_already_done(self, make_ctx, host):
        host.packages.update(catalog.DATABASE_PACKAGES)
        host.services.add("mariadb")
        host.files[catalog.DATABASE_CONFIG] = ""
        ctx = make_ctx()
        assert not DatabaseStep().already_done(ctx)
        ctx.secrets.persist(DB_ROOT_PASSWORD, "existing-pw")
        assert DatabaseStep().already_done(ctx)

    def test_start_failure_raises(self, make_ctx, runner):
        runner.fail_on(["systemctl", "start", "mariadb"])
        with pytest.raises(StepFailure, match="Starting MariaDB"):
            DatabaseStep().apply(make_ctx())


class TestRuntime:
    def test_already_done(self, make_ctx, host, runner):
        host.programs.update(node="/usr/bin/node", yarn="/usr/bin/yarn")
        runner.respond(["node", "-v"], stdout="v22.11.0\n")
        ctx = make_ctx()
        step = RuntimeStep()
        step.configure(ctx)
        assert step.already_done(ctx)

    def test_fresh_install(self, make_ctx, runner):
        ctx = make_ctx()
        step = RuntimeStep()
        step.configure(ctx)
        step.apply(ctx)
        assert any("setup_22.x" in " ".join(c) for c in runner.commands)
        assert runner.ran("apt-get", "install", "-y", "nodejs")
        assert runner.ran("npm", "install", "-g", "yarn")

    def test_replaces_other_version(self, make_ctx, host, runner):
        host.programs["node"] = "/usr/bin/node"
        runner.respond(["node", "-v"], stdout="v18.19.0\n")
        ctx = make_ctx()
        step = RuntimeStep()
        step.configure(ctx)
        step.apply(ctx)
        assert runner.ran("apt-get", "remove", "-y", "nodejs", "npm")

    def test_keeps_other_version_when_declined(self, make_ctx, host, runner, scripted):
        host.programs["node"] = "/usr/bin/node"
        runner.respond(["node", "-v"], stdout="v18.19.0\n")
        prompter = scripted(confirms={"Replace": False})
        ctx = make_ctx(mode=RunMode.INTERACTIVE, prompter=prompter)
        step = RuntimeStep()
        step.configure(ctx)
        step.apply(ctx)
        assert not runner.ran("apt-get", "remove")
        assert ctx.site.node_version == "18"

    def test_interactive_choice(self, make_ctx, scripted):
        ctx = make_ctx(mode=RunMode.INTERACTIVE, prompter=scripted(choices=[1]))
        RuntimeStep().configure(ctx)
        assert ctx.site.node_version == "24"


class TestCache:
    def test_pdf_renderer_backports_fallback(self, make_ctx, runner):
        runner.fail_on(["apt-get", "install", "-y", "wkhtmltopdf"])
        CacheStep().apply(make_ctx())
        assert runner.ran("apt-get", "install", "-y", "-t", "trixie-backports", "wkhtmltopdf")

    def test_pdf_renderer_missing_is_warning(self, make_ctx, runner):
        runner.fail_on(["apt-get", "install", "-y", "wkhtmltopdf"])
        runner.fail_on(["apt-get", "install", "-y", "-t"])
        ctx = make_ctx()
        CacheStep().apply(ctx)
        assert any("wkhtmltopdf" in w for w in ctx.warnings)
        assert runner.ran("systemctl", "start", "redis-server")

    def test_already_done(self, make_ctx, host):
        host.packages.update(catalog.PYTHON_PACKAGES, catalog.SUPPORT_PACKAGES, [catalog.CACHE_PACKAGE])
        host.services.add("redis-server")
        assert CacheStep().already_done(make_ctx())


class TestFramework:
    def test_runs_as_account(self, make_ctx, runner, host):
        ctx = _with_account(make_ctx())
        FrameworkStep().apply(ctx)

        init = [c for c in runner.calls if c.command[:2] == ["bench", "init"]]
        assert init and init[0].user == "frappe"
        assert init[0].cwd == "/home/frappe"
        assert "--frappe-branch" in init[0].command
        assert catalog.LOCAL_BIN_EXPORT in host.files["/home/frappe/.bashrc"]

    def test_pip_fallback(self, make_ctx, runner):
        runner.fail_on(["pip3", "install", "--user", "frappe-bench", "--break-system-packages"])
        FrameworkStep().apply(_with_account(make_ctx()))
        assert runner.commands.count(["pip3", "install", "--user", "frappe-bench"]) == 1

    def test_bench_init_failure(self, make_ctx, runner):
        runner.fail_on(["bench", "init"])
        with pytest.raises(StepFailure, match="bench init"):
            FrameworkStep().apply(_with_account(make_ctx()))

    def test_already_done(self, make_ctx, host):
        host.dirs.add("/home/frappe/frappe-bench")
        assert FrameworkStep().already_done(_with_account(make_ctx()))


class TestSite:
    def test_domain_from_environment(self, make_ctx):
        ctx = make_ctx(environ={"ERPNEXT_DOMAIN": "erp.company.com"})
        SiteStep().configure(ctx)
        assert ctx.site.domain == "erp.company.com"

    def test_invalid_domain_falls_back(self, make_ctx):
        ctx = make_ctx(environ={"ERPNEXT_DOMAIN": "-bad-.com"})
        SiteStep().configure(ctx)
        assert ctx.site.domain == "erp.local"

    def test_quick_default_domain(self, make_ctx):
        ctx = make_ctx(mode=RunMode.QUICK)
        SiteStep().configure(ctx)
        assert ctx.site.domain == "site1.local"

    def test_invalid_configured_domain_replaced(self, make_ctx, config):
        config.default_domain = "-bad-.com"
        ctx = make_ctx()
        SiteStep().configure(ctx)
        assert ctx.site.domain == "erp.local"

    def test_invalid_quick_domain_replaced(self, make_ctx, config):
        config.quick_domain = "erp"
        ctx = make_ctx(mode=RunMode.QUICK)
        SiteStep().configure(ctx)
        assert ctx.site.domain == "erp.local"

    def test_creates_site(self, make_ctx, runner, tmp_path):
        ctx = _with_account(make_ctx())
        step = SiteStep()
        step.configure(ctx)
        step.apply(ctx)

        db = ctx.secrets.load(DB_ROOT_PASSWORD).reveal()
        admin = ctx.secrets.load(ADMIN_PASSWORD)
        assert admin is not None

        new_site = [c for c in runner.calls if c.command[:2] == ["bench", "new-site"]][0]
        assert db not in " ".join(new_site.command)
        assert new_site.input == db + "\n"
        assert runner.ran("bench", "get-app", "erpnext")
        assert runner.ran("bench", "--site", "erp.local", "install-app", "erpnext")
        assert runner.ran("bench", "use", "erp.local")
        assert (tmp_path / "state" / "site.json").is_file()

    def test_already_done(self, make_ctx, host):
        ctx = _with_account(make_ctx())
        ctx.site.domain = "erp.local"
        host.dirs.update({
            "/home/frappe/frappe-bench/sites/erp.local",
            "/home/frappe/frappe-bench/apps/erpnext",
        })
        assert SiteStep().already_done(ctx)


class TestVerify:
    def test_database_failure_raises(self, make_ctx, runner):
        runner.fail_on(["mysql"])
        with pytest.raises(StepFailure, match="MariaDB"):
            VerifyServicesStep().apply(_with_account(make_ctx()))

    def test_redis_without_pong_warns(self, make_ctx):
        ctx = _with_account(make_ctx())
        VerifyServicesStep().apply(ctx)
        assert any("Redis" in w for w in ctx.warnings)

    def test_all_healthy(self, make_ctx, runner):
        runner.respond(["redis-cli", "ping"], stdout="PONG\n")
        ctx = _with_account(make_ctx())
        VerifyServicesStep().apply(ctx)
        assert ctx.warnings == []

    def test_is_recoverable(self):
        assert VerifyServicesStep.fatal is False


class TestAdditionalApps:
    def _ctx(self, make_ctx, config, apps):
        config.install_apps.update({app: True for app in apps})
        ctx = _with_account(make_ctx())
        ctx.site.domain = "erp.local"
        return ctx

    def test_nothing_selected(self, make_ctx, runner):
        ctx = _with_account(make_ctx())
        step = AdditionalAppsStep()
        assert not step.already_done(ctx)
        step.apply(ctx)
        assert runner.call_count == 0

    def test_installs_selected(self, make_ctx, config, runner):
        ctx = self._ctx(make_ctx, config, ["hrms", "wiki"])
        AdditionalAppsStep().apply(ctx)
        assert runner.ran("bench", "get-app", "https://github.com/frappe/hrms")
        assert runner.ran("bench", "--site", "erp.local", "install-app", "wiki")
        assert ctx.site.apps == ["hrms", "wiki"]

    def test_one_failure_does_not_stop_others(self, make_ctx, config, runner):
        runner.fail_on(["bench", "get-app", "https://github.com/frappe/hrms"])
        ctx = self._ctx(make_ctx, config, ["hrms", "wiki"])

        with pytest.raises(StepFailure) as exc:
            AdditionalAppsStep().apply(ctx)

        assert exc.value.fatal is False
        assert ctx.failed_components == ["hrms"]
        assert ctx.site.apps == ["wiki"]

    def test_interactive_selection(self, make_ctx, runner, scripted):
        prompter = scripted(confirms={"Install lms?": True})
        ctx = _with_account(make_ctx(mode=RunMode.INTERACTIVE, prompter=prompter))
        ctx.site.domain = "erp.local"
        AdditionalAppsStep().apply(ctx)
        assert ctx.site.apps == ["lms"]

    def test_already_done(self, make_ctx, config, host):
        ctx = self._ctx(make_ctx, config, ["hrms"])
        host.dirs.add("/home/frappe/frappe-bench/apps/hrms")
        assert AdditionalAppsStep().already_done(ctx)


class TestProduction:
    def test_disabled_by_config(self, make_ctx, config):
        config.production_mode = False
        assert not ProductionStep().enabled(make_ctx())

    def test_apply_uses_account_bench(self, make_ctx, runner):
        ctx = _with_account(make_ctx())
        ProductionStep().apply(ctx)
        setup = [c for c in runner.calls if c.command[1:3] == ["setup", "production"]][0]
        assert setup.command[0] == "/home/frappe/.local/bin/bench"
        assert setup.command[3] == "frappe"
        assert setup.user is None
        assert setup.cwd == "/home/frappe/frappe-bench"
        assert runner.ran("supervisorctl", "reload")

    def test_nginx_failure_is_warning(self, make_ctx, runner):
        runner.fail_on(["systemctl", "restart", "nginx"])
        ctx = _with_account(make_ctx())
        ProductionStep().apply(ctx)
        assert any("Nginx" in w for w in ctx.warnings)


class TestFirewall:
    def test_already_done(self, make_ctx, host, runner):
        host.packages.add("ufw")
        runner.respond(["ufw", "status"], stdout="Status: active\n")
        assert FirewallStep().already_done(make_ctx())

    def test_inactive_not_done(self, make_ctx, host, runner):
        host.packages.add("ufw")
        runner.respond(["ufw", "status"], stdout="Status: inactive\n")
        assert not FirewallStep().already_done(make_ctx())

    def test_apply(self, make_ctx, runner):
        FirewallStep().apply(make_ctx())
        assert runner.ran("ufw", "allow", "Nginx Full")
        assert runner.ran("ufw", "allow", "ssh")
        assert runner.ran("ufw", "--force", "enable")

    def test_disabled_by_config(self, make_ctx, config):
        config.firewall_enabled = False
        assert not FirewallStep().enabled(make_ctx())
