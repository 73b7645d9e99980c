"""
Logging configuration — central setup for the provisioner.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  ERP_PROVISION_LOG_LEVEL env var  >  config log_level  >  INFO

Every line on the console and in the run log carries a timestamp and a
severity tag.  The run log is opened in append mode and never truncated.

Secret values registered with ``register_secret()`` are replaced by
``***REDACTED***`` in every record before any handler formats it.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

# ── Format strings ──────────────────────────────────────────────

# Console — timestamp and severity, nothing else
_FMT_CONSOLE = "[%(asctime)s] [%(levelname)s] %(message)s"
_DATEFMT_CONSOLE = "%H:%M:%S"

# DEBUG level — full diagnostic with file:line
_FMT_DEBUG = "[%(asctime)s] [%(levelname)s] %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# Run log file — always full date
_FMT_FILE = "[%(asctime)s] [%(levelname)s] %(name)s — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

REDACTED = "***REDACTED***"

# Secrets shorter than this are not redacted (too many false hits)
_MIN_SECRET_LEN = 4

_secrets: set[str] = set()
_secrets_lock = threading.Lock()


def register_secret(value: str) -> None:
    """Make sure ``value`` never reaches a log handler in clear text."""
    if value and len(value) >= _MIN_SECRET_LEN:
        with _secrets_lock:
            _secrets.add(value)


def clear_secrets() -> None:
    """Forget all registered secrets (tests only)."""
    with _secrets_lock:
        _secrets.clear()


def redact(text: str) -> str:
    """Replace every registered secret in ``text``."""
    with _secrets_lock:
        values = sorted(_secrets, key=len, reverse=True)
    for value in values:
        if value in text:
            text = text.replace(value, REDACTED)
    return text


class SecretRedactingFilter(logging.Filter):
    """Rewrite a record's message with registered secrets masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not _secrets:
            return True
        try:
            message = record.getMessage()
        except Exception:
            return True
        masked = redact(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional path to the append-only run log.
        log_file_level: Optional separate level for the run log.
            Defaults to DEBUG so the file keeps the full history.
    """
    numeric_level = _parse_level(level)
    redactor = SecretRedactingFilter()

    # ── Console handler (stderr) ────────────────────────────────
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    else:
        fmt, datefmt = _FMT_CONSOLE, _DATEFMT_CONSOLE

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    console.addFilter(redactor)

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level

    # ── Run log (optional) ──────────────────────────────────────
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else logging.DEBUG
        effective_level = min(effective_level, file_level)

        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        except OSError as e:
            root.warning("Cannot open run log %s: %s — logging to console only", log_file, e)
        else:
            fh.setLevel(file_level)
            fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
            fh.addFilter(redactor)
            root.addHandler(fh)

    root.setLevel(effective_level)

    # Don't propagate exceptions from logging itself
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.INFO
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
