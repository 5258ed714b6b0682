"""Shared test fixtures for webauth.

Provides isolated config environments, output state management, a CLI
runner, and a helper that plays the browser against a running loopback
listener. These fixtures are discovered by pytest automatically.
"""

from __future__ import annotations

import logging
import queue
import re
import socket
from pathlib import Path
from typing import Callable

import pytest

from webauth.models import ListenerConfig
from webauth.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the ``webauth`` logger after every test.

    The OutputManager and the log handler installed by the CLI keep
    references to the streams that Typer's CliRunner swaps in; once the test
    finishes those streams are closed.
    """
    yield
    reset_output()
    logger = logging.getLogger("webauth")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    forces the XDG code path, and clears all WEBAUTH_* environment
    variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("webauth.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["WEBAUTH_TIMEOUT", "WEBAUTH_NO_BROWSER"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


# ---------------------------------------------------------------------------
# Loopback helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def fast_listener() -> ListenerConfig:
    """Listener settings with short timeouts suitable for tests."""
    return ListenerConfig(timeout=5.0, read_timeout=2.0, poll_interval=0.05)


class RecordingOpener:
    """Stand-in for ``webbrowser.open`` that records the URLs it is given."""

    def __init__(self) -> None:
        self.urls: queue.Queue[str] = queue.Queue()

    def __call__(self, url: str) -> bool:
        self.urls.put(url)
        return True

    def next_url(self, timeout: float = 5.0) -> str:
        return self.urls.get(timeout=timeout)

    def next_port(self, timeout: float = 5.0) -> int:
        match = re.search(r"redirect_uri=http://127\.0\.0\.1:(\d+)/callback", self.next_url(timeout))
        assert match is not None
        return int(match.group(1))


@pytest.fixture
def opener() -> RecordingOpener:
    return RecordingOpener()


@pytest.fixture
def make_opener() -> Callable[[], RecordingOpener]:
    """Factory for additional openers when a test runs several attempts."""
    return RecordingOpener


def send_raw(port: int, payload: bytes, read_response: bool = True) -> bytes:
    """Connect to the listener, send *payload*, and return the full response."""
    with socket.create_connection(("127.0.0.1", port), timeout=5) as conn:
        conn.sendall(payload)
        conn.shutdown(socket.SHUT_WR)
        if not read_response:
            return b""
        chunks = []
        while True:
            chunk = conn.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def browser() -> Callable[[int, bytes], bytes]:
    """Return a callable that sends raw request bytes to a listener port."""
    return send_raw
