"""
Shared test fixtures and configuration.
"""

import logging
from pathlib import Path

import pytest

from provisioner.adapters.mock import FakeHost, RecordingRunner
from provisioner.core.config.loader import ProvisionConfig
from provisioner.core.context import RunContext
from provisioner.core.models.host import HostProfile
from provisioner.core.models.run import RunMode
from provisioner.core.observability.logging_config import clear_secrets
from provisioner.core.services.prompter import AutoPrompter, Prompter
from provisioner.core.services.secret_store import SecretStore


class ScriptedPrompter(Prompter):
    """Interactive prompter that answers from prepared lists.

    Unscripted confirms return their default; asks return their default.
    """

    def __init__(self, confirms=None, answers=None, secrets=None, choices=None):
        self.confirms = dict(confirms or {})
        self.answers = list(answers or [])
        self.secrets = list(secrets or [])
        self.choices = list(choices or [])
        self.asked: list[str] = []

    @property
    def interactive(self) -> bool:
        return True

    def confirm(self, question, default):
        self.asked.append(question)
        for fragment, answer in self.confirms.items():
            if fragment in question:
                return answer
        return default

    def ask(self, question, default):
        self.asked.append(question)
        return self.answers.pop(0) if self.answers else default

    def ask_secret(self, question):
        self.asked.append(question)
        return self.secrets.pop(0)

    def choose(self, question, options, default=0):
        self.asked.append(question)
        return self.choices.pop(0) if self.choices else default


@pytest.fixture(autouse=True)
def _forget_secrets():
    clear_secrets()
    yield
    clear_secrets()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Undo any setup_logging() a test performs."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def config(tmp_path: Path) -> ProvisionConfig:
    """Default config with every path redirected under tmp_path."""
    return ProvisionConfig(
        log_file=str(tmp_path / "provision.log"),
        credentials_dir=str(tmp_path / "creds"),
        summary_file=str(tmp_path / "erpnext_credentials.txt"),
        state_dir=str(tmp_path / "state"),
    )


@pytest.fixture
def healthy_profile() -> HostProfile:
    return HostProfile(
        os_id="debian",
        os_version="13",
        pretty_name="Debian GNU/Linux 13 (trixie)",
        ram_total_mb=8192,
        disk_free_mb=100 * 1024,
    )


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def make_ctx(config, host, runner, healthy_profile):
    """Factory for a RunContext wired to the fakes."""

    def _make(mode=RunMode.AUTOMATED, prompter=None, **kwargs) -> RunContext:
        prompter = prompter or AutoPrompter()
        secrets = SecretStore(
            Path(config.credentials_dir), Path(config.summary_file), prompter,
        )
        kwargs.setdefault("profile", healthy_profile)
        return RunContext(
            mode=mode,
            config=kwargs.pop("config", config),
            host=kwargs.pop("host", host),
            runner=kwargs.pop("runner", runner),
            prompter=prompter,
            secrets=secrets,
            **kwargs,
        )

    return _make


@pytest.fixture
def scripted():
    """The ScriptedPrompter class, for building interactive prompters."""
    return ScriptedPrompter
