"""CLI tests for the webauth Typer application.

Commands run through :class:`typer.testing.CliRunner` against the real
app. ``login`` tests drive a real loopback listener: the patched browser
launcher fires the redirect request from a background thread, the same
way a browser would after the user signs in.
"""

from __future__ import annotations

import json
import re
import threading
from pathlib import Path
from typing import Optional

import pytest

from webauth import __version__
from webauth.app import app, main
from webauth.config import load_config, save_config
from webauth.exceptions import StateMismatchError
from webauth.models import ListenerConfig, WebAuthConfig
from webauth.pkce import sha256_base64url

VERIFIER_RE = re.compile(r"^[A-Za-z0-9\-._~]{43}$")
PORT_RE = re.compile(r"redirect_uri=http://127\.0\.0\.1:(\d+)/callback")


class FakeBrowser:
    """Replacement for ``webbrowser.open`` that answers with a redirect.

    Args:
        send: The ``browser`` fixture from conftest.
        request: Raw request bytes to send, or ``None`` to never connect.
    """

    def __init__(self, send, request: Optional[bytes]) -> None:
        self._send = send
        self._request = request
        self.urls: list[str] = []
        self.threads: list[threading.Thread] = []

    def __call__(self, url: str) -> bool:
        self.urls.append(url)
        if self._request is not None:
            match = PORT_RE.search(url)
            assert match is not None
            thread = threading.Thread(
                target=self._send, args=(int(match.group(1)), self._request), daemon=True
            )
            thread.start()
            self.threads.append(thread)
        return True

    def join(self) -> None:
        for thread in self.threads:
            thread.join(timeout=5)


@pytest.fixture
def fake_browser(monkeypatch: pytest.MonkeyPatch, browser):
    """Install a :class:`FakeBrowser` for ``login`` and return a factory for it."""

    def _install(request: Optional[bytes]) -> FakeBrowser:
        fake = FakeBrowser(browser, request)
        monkeypatch.setattr("webauth.commands.login.webbrowser.open", fake)
        return fake

    return _install


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"webauth {__version__}" in result.output

    def test_no_args_shows_help(self, cli_runner) -> None:
        result = cli_runner.invoke(app, [])
        assert "login" in result.output
        assert "pkce" in result.output


# ---------------------------------------------------------------------------
# PKCE commands
# ---------------------------------------------------------------------------


class TestPkceCommands:
    def test_verifier(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--quiet", "verifier"])
        assert result.exit_code == 0
        assert VERIFIER_RE.match(result.stdout.strip())

    def test_verifier_uses_configured_length(self, cli_runner, isolated_config: Path) -> None:
        save_config(WebAuthConfig(verifier_bytes=96))
        result = cli_runner.invoke(app, ["--quiet", "verifier"])
        assert result.exit_code == 0
        assert len(result.stdout.strip()) == 128

    def test_challenge_known_vector(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app, ["--quiet", "challenge", "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"]
        )
        assert result.exit_code == 0
        assert result.stdout.strip() == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_pkce_json(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "--quiet", "pkce"])
        assert result.exit_code == 0
        records = json.loads(result.stdout)
        assert len(records) == 1
        record = records[0]
        assert record["method"] == "S256"
        assert VERIFIER_RE.match(record["verifier"])
        assert record["challenge"] == sha256_base64url(record["verifier"])

    def test_pkce_plain(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--plain", "--quiet", "pkce"])
        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0] == "verifier\tchallenge\tmethod"
        verifier, challenge, method = lines[1].split("\t")
        assert challenge == sha256_base64url(verifier)
        assert method == "S256"


# ---------------------------------------------------------------------------
# login
# ---------------------------------------------------------------------------


class TestLogin:
    def test_prints_callback_url(self, cli_runner, isolated_config: Path, fake_browser) -> None:
        fake = fake_browser(b"GET /callback?code=abc123&state=xyz HTTP/1.1\r\n\r\n")
        result = cli_runner.invoke(
            app,
            ["--plain", "--quiet", "login", "https://auth.example.com/authorize?client_id=c",
             "--scheme", "myapp", "--timeout", "5"],
        )
        fake.join()

        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == "myapp://callback?code=abc123&state=xyz"
        assert fake.urls[0].startswith(
            "https://auth.example.com/authorize?client_id=c&redirect_uri=http://127.0.0.1:"
        )

    def test_json_output(self, cli_runner, isolated_config: Path, fake_browser) -> None:
        fake = fake_browser(b"GET /callback?code=a%20b&state=s HTTP/1.1\r\n\r\n")
        result = cli_runner.invoke(
            app,
            ["--json", "--quiet", "login", "https://auth.example.com/authorize",
             "--scheme", "myapp", "--timeout", "5", "--state", "s"],
        )
        fake.join()

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["callback_url"] == "myapp://callback?code=a%20b&state=s"
        assert payload["params"] == {"code": "a b", "state": "s"}

    def test_state_mismatch(self, cli_runner, isolated_config: Path, fake_browser) -> None:
        fake = fake_browser(b"GET /callback?code=abc&state=forged HTTP/1.1\r\n\r\n")
        result = cli_runner.invoke(
            app,
            ["--quiet", "login", "https://auth.example.com/authorize",
             "--scheme", "myapp", "--timeout", "5", "--state", "expected"],
        )
        fake.join()

        assert isinstance(result.exception, StateMismatchError)
        assert result.exception.exit_code == 6

    def test_no_redirect_exits_with_no_result(self, cli_runner, isolated_config: Path, fake_browser) -> None:
        fake_browser(None)
        result = cli_runner.invoke(
            app,
            ["--quiet", "login", "https://auth.example.com/authorize",
             "--scheme", "myapp", "--timeout", "0.3"],
        )
        assert result.exit_code == 7
        assert "No authorization redirect received" in result.output

    def test_redirect_without_query_exits_with_no_result(
        self, cli_runner, isolated_config: Path, fake_browser
    ) -> None:
        fake = fake_browser(b"GET /callback HTTP/1.1\r\n\r\n")
        result = cli_runner.invoke(
            app,
            ["--quiet", "login", "https://auth.example.com/authorize",
             "--scheme", "myapp", "--timeout", "5"],
        )
        fake.join()
        assert result.exit_code == 7

    def test_no_browser_prints_url(self, cli_runner, isolated_config: Path, fake_browser) -> None:
        fake = fake_browser(None)
        result = cli_runner.invoke(
            app,
            ["--quiet", "login", "https://auth.example.com/authorize",
             "--scheme", "myapp", "--timeout", "0.3", "--no-browser"],
        )
        assert result.exit_code == 7
        assert "redirect_uri=http://127.0.0.1:" in result.output
        assert fake.urls == []

    def test_provider_error_still_prints_url(self, cli_runner, isolated_config: Path, fake_browser) -> None:
        fake = fake_browser(b"GET /callback?error=access_denied HTTP/1.1\r\n\r\n")
        result = cli_runner.invoke(
            app,
            ["login", "https://auth.example.com/authorize", "--scheme", "myapp", "--timeout", "5"],
        )
        fake.join()
        assert result.exit_code == 0
        assert "access_denied" in result.output
        assert "myapp://callback?error=access_denied" in result.output

    def test_bad_env_timeout(self, cli_runner, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEBAUTH_TIMEOUT", "later")
        result = cli_runner.invoke(
            app, ["login", "https://auth.example.com/authorize", "--scheme", "myapp"]
        )
        assert result.exception is not None
        assert getattr(result.exception, "code", None) == "CONFIG_ERROR"


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_show_defaults(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "--quiet", "config", "show"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["verifier_bytes"] == 32
        assert data["listener"]["timeout"] == 60
        assert data["listener"]["callback_path"] == "/callback"

    def test_set_float(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "listener.timeout", "120"])
        assert result.exit_code == 0
        assert load_config().listener.timeout == 120

    def test_set_bool(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "listener.open_browser", "false"])
        assert result.exit_code == 0
        assert load_config().listener.open_browser is False

    def test_set_int(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "verifier_bytes", "48"])
        assert result.exit_code == 0
        assert load_config().verifier_bytes == 48

    def test_set_unknown_key(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "listener.nope", "1"])
        assert result.exit_code == 2
        assert "Unknown config key" in result.output

    def test_set_invalid_parent(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "verifier_bytes.deep", "1"])
        assert result.exit_code == 2

    def test_set_bad_number(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "listener.buffer_size", "big"])
        assert result.exit_code == 2
        assert "Expected int" in result.output

    def test_set_out_of_range(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "verifier_bytes", "8"])
        assert result.exit_code == 2
        assert load_config().verifier_bytes == 32

    def test_reset_with_force(self, cli_runner, isolated_config: Path) -> None:
        save_config(WebAuthConfig(listener=ListenerConfig(timeout=5)))
        result = cli_runner.invoke(app, ["--force", "config", "reset"])
        assert result.exit_code == 0
        assert load_config() == WebAuthConfig()

    def test_reset_declined(self, cli_runner, isolated_config: Path) -> None:
        save_config(WebAuthConfig(listener=ListenerConfig(timeout=5)))
        result = cli_runner.invoke(app, ["config", "reset"], input="n\n")
        assert result.exit_code == 0
        assert load_config().listener.timeout == 5


# ---------------------------------------------------------------------------
# main() entry point
# ---------------------------------------------------------------------------


class TestMain:
    @pytest.fixture(autouse=True)
    def _no_signal_handlers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("webauth.app._setup_signal_handlers", lambda: None)

    def test_webauth_error_exits_with_its_code(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch, capsys
    ) -> None:
        def _raise() -> None:
            raise StateMismatchError("Callback 'state' does not match")

        monkeypatch.setattr("webauth.app.app", _raise)
        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 6
        assert "does not match" in capsys.readouterr().err

    def test_unexpected_error_writes_crash_log(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch, capsys
    ) -> None:
        def _raise() -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr("webauth.app.app", _raise)
        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        logs = list((isolated_config / "data" / "webauth" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "RuntimeError: boom" in logs[0].read_text()
        assert "Unexpected error" in capsys.readouterr().err
