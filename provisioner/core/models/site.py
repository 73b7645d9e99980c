"""
InstalledSite — which account and domain this host was provisioned for.

Filled in progressively during a run (account by the service-account
step, domain by the site step) and persisted so that uninstall and
later runs can find them again.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class InstalledSite(BaseModel):
    schema_version: int = 1

    account: str = ""
    home: str = ""
    domain: str = ""
    node_version: str = ""
    apps: list[str] = Field(default_factory=list)

    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    @property
    def bench_dir(self) -> str:
        if not self.home:
            return ""
        return f"{self.home}/frappe-bench"

    @property
    def url(self) -> str:
        return f"http://{self.domain}" if self.domain else ""

    def touch(self) -> None:
        self.updated_at = _now_iso()

    def add_app(self, app: str) -> None:
        if app not in self.apps:
            self.apps.append(app)
