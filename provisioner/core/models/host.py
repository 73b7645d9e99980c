"""
HostProfile — read-only facts about the target machine.
"""

from __future__ import annotations

from pydantic import BaseModel


class HostProfile(BaseModel):
    os_id: str = ""
    os_version: str = ""
    pretty_name: str = ""
    ram_total_mb: int = 0
    disk_free_mb: int = 0

    @property
    def ram_gb(self) -> float:
        return round(self.ram_total_mb / 1024, 1)

    @property
    def disk_free_gb(self) -> float:
        return round(self.disk_free_mb / 1024, 1)

    @property
    def display_name(self) -> str:
        return self.pretty_name or f"{self.os_id} {self.os_version}".strip() or "unknown"

    def matches(self, os_id: str, os_version: str) -> bool:
        return self.os_id == os_id and self.os_version == os_version
