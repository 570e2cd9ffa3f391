"""
Shared test fixtures and configuration.
"""

import re
from pathlib import Path

import pytest

from remote_bootstrap.adapters.mock import MockTransport
from remote_bootstrap.core.models.install import ServerIdentity

_ATTEMPT_RE = re.compile(r"([0-9a-f]{24}): start")


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def server() -> ServerIdentity:
    return ServerIdentity(version="1.96.4", commit="abc123def", release="25037")


@pytest.fixture
def mock_transport() -> MockTransport:
    return MockTransport().connect()


def result_block(attempt_id: str, **fields: str) -> str:
    """Build a result block the way the generated scripts print it."""
    lines = [f"{attempt_id}: start"]
    lines.extend(f"{key}=={value}==" for key, value in fields.items())
    lines.append(f"{attempt_id}: end")
    return "\n".join(lines) + "\n"


def attempt_id_from(command: str) -> str:
    """Pull the attempt id out of a rendered install command."""
    return _ATTEMPT_RE.search(command).group(1)


def exactly(text: str):
    """Mock matcher for one exact command (substrings would also hit the install script)."""
    return lambda command: command == text
