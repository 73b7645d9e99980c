"""
Tests for persistence — installed-site state file and run history.
"""

import os
import stat

from provisioner.core.models.site import InstalledSite
from provisioner.core.persistence.audit import RunAuditEntry, RunHistory
from provisioner.core.persistence.state_file import load_site, remove_site, save_site, site_path


class TestSiteState:
    def test_missing_returns_none(self, tmp_state_dir):
        assert load_site(site_path(tmp_state_dir)) is None

    def test_save_and_load(self, tmp_state_dir):
        path = site_path(tmp_state_dir)
        site = InstalledSite(account="frappe", home="/home/frappe", domain="erp.local", apps=["erpnext"])
        save_site(site, path)

        loaded = load_site(path)
        assert loaded.account == "frappe"
        assert loaded.bench_dir == "/home/frappe/frappe-bench"
        assert loaded.url == "http://erp.local"
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_state_dir):
        save_site(InstalledSite(account="frappe"), site_path(tmp_state_dir))
        assert [p.name for p in tmp_state_dir.iterdir()] == ["site.json"]

    def test_corrupt_file_ignored(self, tmp_state_dir):
        path = site_path(tmp_state_dir)
        path.write_text("{not json")
        assert load_site(path) is None

    def test_remove(self, tmp_state_dir):
        path = site_path(tmp_state_dir)
        save_site(InstalledSite(), path)
        assert remove_site(path) is True
        assert remove_site(path) is False


class TestRunHistory:
    def test_append_only(self, tmp_state_dir):
        history = RunHistory(tmp_state_dir)
        history.write(RunAuditEntry(operation="install", status="ok"))
        history.write(RunAuditEntry(operation="uninstall", status="partial"))

        entries = history.read_all()
        assert [e.operation for e in entries] == ["install", "uninstall"]
        assert len(history.path.read_text().splitlines()) == 2

    def test_corrupt_line_skipped(self, tmp_state_dir):
        history = RunHistory(tmp_state_dir)
        history.write(RunAuditEntry(operation="install"))
        with history.path.open("a") as f:
            f.write("garbage\n")
        history.write(RunAuditEntry(operation="install"))
        assert len(history.read_all()) == 2

    def test_read_recent(self, tmp_state_dir):
        history = RunHistory(tmp_state_dir)
        for status in ("ok", "partial", "failed"):
            history.write(RunAuditEntry(operation="install", status=status))
        assert [e.status for e in history.read_recent(2)] == ["partial", "failed"]

    def test_unwritable_is_not_fatal(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        RunHistory(blocker / "state").write(RunAuditEntry(operation="install"))
