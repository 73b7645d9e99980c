"""
Run history — append-only NDJSON log of provisioning runs.

Every run (install, uninstall, rollback) appends one line to
``<state_dir>/runs.ndjson``.  Entries are never modified or deleted
and never contain secret values, only step names and outcomes.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_FILE = "runs.ndjson"


class RunAuditEntry(BaseModel):
    """A single run history entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation: str = ""            # install, uninstall
    mode: str = ""                 # automated, quick, interactive

    status: str = ""               # ok, partial, failed
    started_at: str = ""
    ended_at: str = ""
    completed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    rolled_back: list[str] = Field(default_factory=list)

    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class RunHistory:
    """Append-only history writer."""

    def __init__(self, state_dir: Path):
        self._path = Path(state_dir) / DEFAULT_HISTORY_FILE

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: RunAuditEntry) -> None:
        """Append an entry.  Failures are logged, never raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Run history entry written: %s/%s", entry.operation, entry.status)
        except OSError as e:
            logger.error("Failed to write run history: %s", e)

    def read_all(self) -> list[RunAuditEntry]:
        """All entries, oldest first.  Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(RunAuditEntry.model_validate(json.loads(line)))
                    except Exception as e:
                        logger.warning("Skipping corrupt history entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read run history: %s", e)

        return entries

    def read_recent(self, n: int = 10) -> list[RunAuditEntry]:
        return self.read_all()[-n:]
