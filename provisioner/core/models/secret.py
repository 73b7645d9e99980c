"""
Secret model — a credential tied to a named purpose.

The value is held as a ``SecretStr`` so that ``repr()``, ``str()`` and
``model_dump()`` never reveal it by accident.
"""

from __future__ import annotations

import string
from enum import Enum

from pydantic import BaseModel, SecretStr


class SecretMethod(str, Enum):
    GENERATED = "generated"
    ENTERED = "entered"          # typed by the operator
    ENVIRONMENT = "environment"  # supplied via environment variable
    PERSISTED = "persisted"      # reused from a previous run


class Charset(str, Enum):
    """Character classes for generated secrets."""

    ALPHANUMERIC = "alphanumeric"
    HEX = "hex"
    SYMBOLS = "symbols"

    @property
    def alphabet(self) -> str:
        if self is Charset.HEX:
            return string.hexdigits.lower()[:16]
        if self is Charset.SYMBOLS:
            return string.ascii_letters + string.digits + "!#%+,-.:=@^_~"
        return string.ascii_letters + string.digits


# Purposes the provisioner manages.
DB_ROOT_PASSWORD = "mysql_root_password"
ADMIN_PASSWORD = "admin_password"

PURPOSE_LABELS = {
    DB_ROOT_PASSWORD: "MariaDB root password",
    ADMIN_PASSWORD: "ERPNext Administrator password",
}

FILE_MODE = 0o600
DIR_MODE = 0o700


class Secret(BaseModel):
    purpose: str
    value: SecretStr
    method: SecretMethod = SecretMethod.GENERATED
    location: str | None = None
    mode: int = FILE_MODE

    @property
    def label(self) -> str:
        return PURPOSE_LABELS.get(self.purpose, self.purpose.replace("_", " "))

    def reveal(self) -> str:
        """Return the plaintext value (for consumers, never for logs)."""
        return self.value.get_secret_value()
