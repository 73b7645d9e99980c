"""
Configuration loader — reads the optional provisioning config file.

The file is a flat YAML mapping of independently optional options.
Every option has a built-in default, so a missing file is not an error.
Keys are case-insensitive and may carry the legacy ``CONFIG_`` prefix,
so ``CONFIG_MIN_RAM_GB: 4`` and ``min_ram_gb: 4`` mean the same thing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# Searched in order when no explicit path is given
CONFIG_FILE_NAME = "provision.yml"
SYSTEM_CONFIG_FILE = Path("/etc/erpnext-provision.yml")

OPTIONAL_APPS = (
    "hrms",
    "payments",
    "webshop",
    "wiki",
    "helpdesk",
    "lms",
    "builder",
    "print_designer",
)

_LEGACY_PREFIX = "config_"

# Legacy option names that map onto a differently named option
_ALIASES = {
    "frappe_version": "frappe_branch",
    "erpnext_version": "erpnext_branch",
}


class ConfigError(Exception):
    """Raised when the configuration file is unreadable or invalid."""


class ProvisionConfig(BaseModel):
    """Resolved configuration for one run."""

    # ── System requirements ─────────────────────────────────────
    min_ram_gb: float = 4
    min_disk_gb: float = 20
    target_os_id: str = "debian"
    target_os_version: str = "13"

    # ── Versions ────────────────────────────────────────────────
    frappe_branch: str = "version-15"
    erpnext_branch: str = "version-15"
    node_version: str = "22"

    # ── Identity ────────────────────────────────────────────────
    default_domain: str = "erp.local"
    quick_domain: str = "site1.local"
    default_user: str = "frappe"

    # ── Secrets ─────────────────────────────────────────────────
    db_root_password_length: int = Field(default=24, ge=12, le=128)
    admin_password_length: int = Field(default=16, ge=8, le=128)
    db_secure: bool = True

    # ── Feature toggles ─────────────────────────────────────────
    sudo_limited: bool = True
    firewall_enabled: bool = True
    production_mode: bool = True
    install_apps: dict[str, bool] = Field(
        default_factory=lambda: {app: False for app in OPTIONAL_APPS}
    )

    # ── Logging & paths ─────────────────────────────────────────
    log_level: str = "INFO"
    log_file: str = "/var/log/erpnext-provision.log"
    credentials_dir: str = "/root/.erpnext-install"
    summary_file: str = "/root/erpnext_credentials.txt"
    state_dir: str = "/var/lib/erpnext-provision"

    @field_validator("node_version", "target_os_version", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> Any:
        # YAML reads `node_version: 22` as an int
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("install_apps")
    @classmethod
    def _known_apps(cls, value: dict[str, bool]) -> dict[str, bool]:
        unknown = sorted(set(value) - set(OPTIONAL_APPS))
        if unknown:
            raise ValueError(f"unknown apps: {', '.join(unknown)}")
        merged = {app: False for app in OPTIONAL_APPS}
        merged.update(value)
        return merged

    @property
    def selected_apps(self) -> list[str]:
        return [app for app in OPTIONAL_APPS if self.install_apps.get(app)]


def _normalise_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Lower-case keys, strip the legacy prefix, fold ``install_<app>`` keys."""
    result: dict[str, Any] = {}
    apps: dict[str, bool] = {}

    for raw_key, value in data.items():
        key = str(raw_key).strip().lower()
        if key.startswith(_LEGACY_PREFIX):
            key = key[len(_LEGACY_PREFIX):]
        key = _ALIASES.get(key, key)

        if key.startswith("install_") and key != "install_apps":
            apps[key[len("install_"):]] = value
            continue
        result[key] = value

    if apps:
        merged = dict(result.get("install_apps") or {})
        merged.update(apps)
        result["install_apps"] = merged
    return result


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Return the first existing config file (cwd, then /etc), or None."""
    candidate = (start_dir or Path.cwd()) / CONFIG_FILE_NAME
    if candidate.is_file():
        return candidate
    if SYSTEM_CONFIG_FILE.is_file():
        return SYSTEM_CONFIG_FILE
    return None


def load_config(path: Path | None = None) -> ProvisionConfig:
    """Load and validate configuration.

    Args:
        path: Explicit config path. If None, searches the default
            locations; if nothing is found the built-in defaults apply.

    Raises:
        ConfigError: If an explicit file is missing, or any file is
            unreadable or invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No config file found — using built-in defaults")
            return ProvisionConfig()
    elif not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return ProvisionConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    data = _normalise_keys(data)
    unknown = sorted(set(data) - set(ProvisionConfig.model_fields))
    if unknown:
        logger.warning("Ignoring unknown config options in %s: %s", path, ", ".join(unknown))
        for key in unknown:
            data.pop(key)

    try:
        config = ProvisionConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded config from %s", path)
    return config
