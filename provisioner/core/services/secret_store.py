"""
Secret Store — generate, persist and reuse credentials.

One file per purpose inside the credentials directory:

    <credentials_dir>/            mode 0700
        mysql_root_password       mode 0600, the bare value + newline
        admin_password            mode 0600

Writes use a scoped acquisition (open 0600 → write → restrict+verify in
``finally``), so the permission bits are exactly 0600 on every exit
path, including a write that fails half-way.  Anything that prevents
that raises ``PersistenceError``: an unprotected secret is worse than
no secret.

Lifecycle policy (``obtain``):
    1. already obtained in this run       → same Secret
    2. persisted copy found               → reuse it, warn, never regenerate
    3. value supplied (environment)       → persist it
    4. interactive, generation declined   → ask the operator
    5. otherwise                          → generate

Every value is registered with the logging redaction filter the moment
the store sees it.
"""

from __future__ import annotations

import logging
import os
import secrets as _secrets
import stat
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

from provisioner.core.errors import PersistenceError, SecretGenerationError
from provisioner.core.models.secret import (
    DIR_MODE,
    FILE_MODE,
    PURPOSE_LABELS,
    Charset,
    Secret,
    SecretMethod,
)
from provisioner.core.observability.logging_config import register_secret
from provisioner.core.services.prompter import Prompter

logger = logging.getLogger(__name__)


def _restrict(path: Path) -> None:
    """Force ``path`` to mode 0600 and verify it stuck."""
    try:
        os.chmod(path, FILE_MODE)
        actual = stat.S_IMODE(os.stat(path).st_mode)
    except OSError as e:
        raise PersistenceError(f"Cannot restrict permissions on {path}: {e}") from e
    if actual != FILE_MODE:
        raise PersistenceError(
            f"Permissions on {path} are {actual:o}, expected {FILE_MODE:o}"
        )


@contextmanager
def _owner_only(path: Path) -> Iterator[TextIO]:
    """Open ``path`` for writing; on every exit the file ends up 0600."""
    fd: int | None = None
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC | os.O_NOFOLLOW, FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            fd = None
            yield f
    finally:
        if fd is not None:
            os.close(fd)
        if path.exists():
            _restrict(path)


def _is_well_formed(value: str) -> bool:
    return bool(value) and value.isprintable()


class SecretStore:
    """Credential lifecycle for one run."""

    def __init__(
        self,
        credentials_dir: Path,
        summary_file: Path,
        prompter: Prompter,
    ):
        self._dir = Path(credentials_dir)
        self._summary = Path(summary_file)
        self._prompter = prompter
        self._obtained: dict[str, Secret] = {}

    @property
    def credentials_dir(self) -> Path:
        return self._dir

    @property
    def summary_file(self) -> Path:
        return self._summary

    def path_for(self, purpose: str) -> Path:
        return self._dir / purpose

    # ── Primitives ──────────────────────────────────────────────

    def generate(
        self,
        purpose: str,
        length: int = 24,
        charset: Charset = Charset.ALPHANUMERIC,
    ) -> Secret:
        """Produce a random value from the OS entropy source."""
        alphabet = charset.alphabet
        try:
            value = "".join(_secrets.choice(alphabet) for _ in range(length))
        except (NotImplementedError, OSError) as e:
            raise SecretGenerationError(f"Random source unavailable: {e}") from e
        register_secret(value)
        return Secret(purpose=purpose, value=value, method=SecretMethod.GENERATED)

    def _ensure_dir(self, directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
            os.chmod(directory, DIR_MODE)
        except OSError as e:
            raise PersistenceError(f"Cannot create credentials directory {directory}: {e}") from e

    def persist(
        self,
        purpose: str,
        value: str,
        location: Path | None = None,
        method: SecretMethod = SecretMethod.GENERATED,
    ) -> Secret:
        """Write ``value`` to the purpose's file with owner-only access.

        Raises:
            PersistenceError: Directory cannot be created, the file cannot
                be written, or its permissions cannot be set to 0600.
        """
        register_secret(value)
        path = Path(location) if location else self.path_for(purpose)
        self._ensure_dir(path.parent)

        try:
            with _owner_only(path) as f:
                f.write(value + "\n")
        except OSError as e:
            raise PersistenceError(f"Cannot write {path}: {e}") from e

        logger.info("%s saved to %s", PURPOSE_LABELS.get(purpose, purpose), path)
        return Secret(purpose=purpose, value=value, method=method, location=str(path))

    def load(self, purpose: str, location: Path | None = None) -> Secret | None:
        """Return the persisted secret, or None.

        A malformed file is treated as missing (with a warning).
        """
        path = Path(location) if location else self.path_for(purpose)
        if not path.is_file():
            return None

        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read stored credential %s: %s — ignoring it", path, e)
            return None

        value = raw[:-1] if raw.endswith("\n") else raw
        if not _is_well_formed(value):
            logger.warning("Stored credential %s is malformed — ignoring it", path)
            return None

        register_secret(value)
        mode = stat.S_IMODE(path.stat().st_mode)
        if mode != FILE_MODE:
            logger.warning("Stored credential %s had mode %o — restricting to %o", path, mode, FILE_MODE)
            _restrict(path)

        return Secret(purpose=purpose, value=value, method=SecretMethod.PERSISTED, location=str(path))

    def ask(self, purpose: str, echo: bool = False) -> Secret:
        """Prompt the operator until a usable value is entered."""
        label = PURPOSE_LABELS.get(purpose, purpose)
        while True:
            if echo:
                value = self._prompter.ask(f"Enter {label}", "")
            else:
                value = self._prompter.ask_secret(f"Enter {label}")
            if _is_well_formed(value):
                register_secret(value)
                return Secret(purpose=purpose, value=value, method=SecretMethod.ENTERED)
            logger.warning("%s must be a non-empty single line — please try again.", label)

    # ── Lifecycle ───────────────────────────────────────────────

    def obtain(
        self,
        purpose: str,
        *,
        length: int = 24,
        charset: Charset = Charset.ALPHANUMERIC,
        supplied: str | None = None,
    ) -> Secret:
        """Return the secret for ``purpose`` following the lifecycle policy."""
        if purpose in self._obtained:
            return self._obtained[purpose]

        label = PURPOSE_LABELS.get(purpose, purpose)
        existing = self.load(purpose)
        if existing is not None:
            logger.warning("%s already exists in %s — reusing it", label, existing.location)
            if supplied and supplied != existing.reveal():
                logger.warning("Ignoring supplied %s; the stored value stays in effect", label)
            self._obtained[purpose] = existing
            return existing

        if supplied:
            if not _is_well_formed(supplied):
                logger.warning("Supplied %s is not usable — generating one instead", label)
            else:
                secret = self.persist(purpose, supplied, method=SecretMethod.ENVIRONMENT)
                self._obtained[purpose] = secret
                return secret

        if self._prompter.interactive and not self._prompter.confirm(
            f"Generate random {label}?", default=True,
        ):
            entered = self.ask(purpose)
            secret = self.persist(purpose, entered.reveal(), method=SecretMethod.ENTERED)
        else:
            generated = self.generate(purpose, length, charset)
            secret = self.persist(purpose, generated.reveal(), method=SecretMethod.GENERATED)

        self._obtained[purpose] = secret
        return secret

    def write_summary(self, lines: list[str]) -> Path:
        """Write the human-readable credentials summary (mode 0600)."""
        self._ensure_dir(self._summary.parent)
        try:
            with _owner_only(self._summary) as f:
                f.write("\n".join(lines) + "\n")
        except OSError as e:
            raise PersistenceError(f"Cannot write {self._summary}: {e}") from e
        logger.info("Credentials summary saved to %s", self._summary)
        return self._summary

    def remove_all(self) -> list[str]:
        """Delete every credential file and the summary (uninstall)."""
        removed: list[str] = []
        if self._dir.is_dir():
            for path in sorted(self._dir.iterdir()):
                if path.is_file() or path.is_symlink():
                    path.unlink()
                    removed.append(str(path))
            try:
                self._dir.rmdir()
            except OSError:
                logger.debug("Credentials directory %s not empty — left in place", self._dir)
        if self._summary.is_file():
            self._summary.unlink()
            removed.append(str(self._summary))
        self._obtained.clear()
        return removed
