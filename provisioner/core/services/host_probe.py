"""
Host probe — gather the HostProfile once at run start.

Reads /etc/os-release, /proc/meminfo and the free space of ``/``.
Every reader falls back to an empty / zero value instead of raising.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil

from provisioner.core.models.host import HostProfile

logger = logging.getLogger(__name__)

OS_RELEASE = "/etc/os-release"
MEMINFO = "/proc/meminfo"


def is_superuser() -> bool:
    """Whether the current process runs with uid 0."""
    return os.geteuid() == 0


def _read_os_release(path: str = OS_RELEASE) -> dict[str, str]:
    """Parse os-release KEY=VALUE lines (values may be quoted)."""
    info: dict[str, str] = {}
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, _, raw = line.partition("=")
                try:
                    parts = shlex.split(raw)
                except ValueError:
                    parts = [raw.strip("\"'")]
                info[key] = parts[0] if parts else ""
    except OSError:
        pass
    return info


def _read_total_ram_mb(path: str = MEMINFO) -> int:
    """Read total RAM in MB from /proc/meminfo."""
    try:
        with open(path) as f:
            for line in f:
                if line.startswith("MemTotal:"):
                    return int(line.split()[1]) // 1024
    except (OSError, ValueError, IndexError):
        pass
    return 0


def _read_disk_free_mb(path: str = "/") -> int:
    """Read free disk space in MB."""
    try:
        return shutil.disk_usage(path).free // (1024 * 1024)
    except OSError:
        return 0


def probe_host() -> HostProfile:
    os_release = _read_os_release()
    profile = HostProfile(
        os_id=os_release.get("ID", ""),
        os_version=os_release.get("VERSION_ID", ""),
        pretty_name=os_release.get("PRETTY_NAME", ""),
        ram_total_mb=_read_total_ram_mb(),
        disk_free_mb=_read_disk_free_mb("/"),
    )
    logger.debug(
        "Host profile: %s, %.1f GB RAM, %.1f GB free disk",
        profile.display_name, profile.ram_gb, profile.disk_free_gb,
    )
    return profile
