"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for webauth:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.webauth/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~webauth.models.WebAuthConfig`
  JSON file holding listener and PKCE settings.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, and the config file into the effective
  configuration.

File writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so a crash never leaves a truncated config behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from webauth.exceptions import ConfigError
from webauth.models import ListenerConfig, WebAuthConfig

_APP_NAME = "webauth"
_CONFIG_FILENAME = "config.json"

ENV_TIMEOUT = "WEBAUTH_TIMEOUT"
ENV_NO_BROWSER = "WEBAUTH_NO_BROWSER"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/webauth/`` (default ``~/.config/webauth/``).
    On macOS/Windows: ``~/.webauth/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/webauth/`` (default ``~/.local/share/webauth/``).
    On macOS/Windows: ``~/.webauth/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_config() -> WebAuthConfig:
    """Load the global configuration.

    Returns:
        The deserialised :class:`~webauth.models.WebAuthConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = config_path()
    if not path.is_file():
        return WebAuthConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return WebAuthConfig.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: WebAuthConfig) -> None:
    """Persist *config* atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


def resolve_config(
    cli_timeout: Optional[float] = None,
    cli_no_browser: bool = False,
) -> WebAuthConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``cli_timeout``, ``cli_no_browser``)
        2. Environment variables (``WEBAUTH_TIMEOUT``, ``WEBAUTH_NO_BROWSER``)
        3. User config (``~/.config/webauth/config.json``)
        4. Defaults

    Raises:
        ConfigError: If the config file is invalid or ``WEBAUTH_TIMEOUT``
            is not a positive number.
    """
    config = load_config()
    listener = config.listener.model_dump()

    env_timeout = os.environ.get(ENV_TIMEOUT)
    if env_timeout:
        try:
            listener["timeout"] = float(env_timeout)
        except ValueError as exc:
            raise ConfigError(
                f"{ENV_TIMEOUT} must be a number of seconds, got: {env_timeout!r}"
            ) from exc
    if _env_flag(ENV_NO_BROWSER):
        listener["open_browser"] = False

    if cli_timeout is not None:
        listener["timeout"] = cli_timeout
    if cli_no_browser:
        listener["open_browser"] = False

    try:
        return config.model_copy(
            update={"listener": ListenerConfig.model_validate(listener)}
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid listener settings: {exc}") from exc
