"""
Installed-site state — atomic read/write of the InstalledSite record.

Stored as JSON in ``<state_dir>/site.json`` with mode 0600.  Writes are
atomic (write to temp file, then rename) so an interrupted run never
leaves a half-written record behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from provisioner.core.models.site import InstalledSite

logger = logging.getLogger(__name__)

DEFAULT_SITE_FILE = "site.json"


def site_path(state_dir: Path) -> Path:
    return Path(state_dir) / DEFAULT_SITE_FILE


def load_site(path: Path) -> InstalledSite | None:
    """Load the installed-site record.

    Returns:
        InstalledSite, or None if the file is missing or corrupt.
    """
    if not path.is_file():
        logger.debug("No site record at %s", path)
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return InstalledSite.model_validate(data)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt site record %s: %s — ignoring it", path, e)
        return None
    except Exception as e:
        logger.warning("Cannot load site record from %s: %s — ignoring it", path, e)
        return None


def save_site(site: InstalledSite, path: Path) -> None:
    """Save the installed-site record (atomic write, mode 0600)."""
    site.touch()
    path.parent.mkdir(parents=True, exist_ok=True)

    content = json.dumps(site.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".site_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(tmp, 0o600)
        tmp.replace(path)
        logger.debug("Site record saved to %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save site record to %s", path)
        raise


def remove_site(path: Path) -> bool:
    if path.is_file():
        path.unlink()
        return True
    return False
