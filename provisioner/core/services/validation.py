"""
Field validation (pure) and the resolve-with-fallback policy.

Validators raise ``ValidationError``; the ``resolve_*`` helpers are the
only callers and never let it escape:

    interactive      re-prompt until the value is valid (Ctrl-C aborts)
    non-interactive  fall back to a known-good default with a warning
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from provisioner.core.errors import ValidationError
from provisioner.core.services.prompter import Prompter

logger = logging.getLogger(__name__)

# Known-good values used when configured/supplied ones are invalid
FALLBACK_DOMAIN = "erp.local"
FALLBACK_ACCOUNT = "frappe"

_LABEL = r"(?!-)[A-Za-z0-9-]{1,63}(?<!-)"
_FQDN_RE = re.compile(rf"^(?:{_LABEL}\.)+[A-Za-z]{{2,63}}$")
_LOCAL_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.local$")
_MAX_DOMAIN_LEN = 253

_ACCOUNT_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")
_RESERVED_ACCOUNTS = frozenset({"root", "daemon", "bin", "sys", "nobody", "www-data", "mysql", "redis"})


def validate_domain(value: str) -> str:
    """Return the normalised (lower-case) domain or raise ValidationError.

    Accepts ``label.label...tld`` with an alphabetic TLD, or a single
    label followed by ``.local``.
    """
    candidate = (value or "").strip().rstrip(".")
    if not candidate:
        raise ValidationError("domain", value, "must not be empty")
    if len(candidate) > _MAX_DOMAIN_LEN:
        raise ValidationError("domain", value, f"longer than {_MAX_DOMAIN_LEN} characters")
    if not (_FQDN_RE.match(candidate) or _LOCAL_RE.match(candidate)):
        raise ValidationError(
            "domain", value, "expected a name like erp.example.com or erp.local",
        )
    return candidate.lower()


def is_valid_domain(value: str) -> bool:
    try:
        validate_domain(value)
    except ValidationError:
        return False
    return True


def validate_account(value: str) -> str:
    """Return the account name or raise ValidationError."""
    candidate = (value or "").strip()
    if not _ACCOUNT_RE.match(candidate):
        raise ValidationError(
            "account name", value, "use lower-case letters, digits, '-' or '_' (max 32)",
        )
    if candidate in _RESERVED_ACCOUNTS:
        raise ValidationError("account name", value, "reserved system account")
    return candidate


def _resolve(
    prompter: Prompter,
    *,
    question: str,
    candidate: str,
    fallback: str,
    known_good: str,
    validator: Callable[[str], str],
) -> str:
    if prompter.interactive:
        while True:
            answer = prompter.ask(question, candidate)
            try:
                return validator(answer)
            except ValidationError as e:
                logger.warning("%s — please try again.", e)

    try:
        return validator(candidate)
    except ValidationError as e:
        try:
            fallback = validator(fallback)
        except ValidationError:
            fallback = known_good
        logger.warning("%s — using default %s", e, fallback)
        return fallback


def resolve_domain(prompter: Prompter, candidate: str, fallback: str = FALLBACK_DOMAIN) -> str:
    return _resolve(
        prompter,
        question="Enter domain for the ERPNext site",
        candidate=candidate,
        fallback=fallback,
        known_good=FALLBACK_DOMAIN,
        validator=validate_domain,
    )


def resolve_account(prompter: Prompter, candidate: str) -> str:
    return _resolve(
        prompter,
        question="Enter username for the Frappe installation",
        candidate=candidate,
        fallback=FALLBACK_ACCOUNT,
        known_good=FALLBACK_ACCOUNT,
        validator=validate_account,
    )
