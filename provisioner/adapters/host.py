"""
System host — the real implementation of the Host interface.

Queries go through dpkg / systemctl / pwd; file operations act on the
local filesystem.  Queries never raise: an error reads as "not there".
"""

from __future__ import annotations

import logging
import os
import pwd
import shutil
from pathlib import Path

from provisioner.adapters.base import Host, Runner

logger = logging.getLogger(__name__)


class SystemHost(Host):
    """The machine this process runs on."""

    def __init__(self, runner: Runner):
        self._runner = runner

    # ── Queries ────────────────────────────────────────────────

    def package_installed(self, package: str) -> bool:
        result = self._runner.run(["dpkg-query", "-W", "-f=${Status}", package])
        return result.ok and "install ok installed" in result.stdout

    def service_active(self, service: str) -> bool:
        return self._runner.run(["systemctl", "is-active", "--quiet", service]).ok

    def user_exists(self, account: str) -> bool:
        try:
            pwd.getpwnam(account)
        except KeyError:
            return False
        return True

    def home_dir(self, account: str) -> str:
        try:
            return pwd.getpwnam(account).pw_dir
        except KeyError:
            return f"/home/{account}"

    def which(self, program: str) -> str | None:
        return shutil.which(program)

    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def read_text(self, path: str) -> str | None:
        try:
            return Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    # ── Mutations ──────────────────────────────────────────────

    def write_text(self, path: str, content: str, mode: int = 0o644) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        os.chmod(target, mode)
        logger.debug("Wrote %s (mode %o)", target, mode)

    def append_line(self, path: str, line: str) -> bool:
        target = Path(path)
        current = self.read_text(path) or ""
        if line in current.splitlines():
            return False
        prefix = "" if not current or current.endswith("\n") else "\n"
        with target.open("a", encoding="utf-8") as f:
            f.write(f"{prefix}{line}\n")
        return True

    def remove(self, path: str) -> None:
        target = Path(path)
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
