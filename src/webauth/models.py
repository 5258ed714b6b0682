"""Pydantic models for webauth configuration.

Two models make up the persisted configuration:

* :class:`ListenerConfig` -- knobs of the one-shot loopback listener
  (address, callback path, timeouts, read buffer size).
* :class:`WebAuthConfig` -- the global configuration file, embedding a
  :class:`ListenerConfig` plus PKCE settings.

Defaults match the fixed behaviour expected by desktop hosts: a
60-second accept window, a single 4096-byte read, backlog 1, and the
``http://127.0.0.1:{port}/callback`` redirect URI.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ListenerConfig(BaseModel):
    """Settings for the loopback redirect listener.

    Example::

        ListenerConfig(timeout=120, open_browser=False)
    """

    host: str = Field(
        default="127.0.0.1", description="IPv4 loopback address to bind"
    )
    callback_path: str = Field(
        default="/callback", description="Path component of the redirect URI"
    )
    timeout: float = Field(
        default=60.0, gt=0, description="Seconds to wait for the browser redirect"
    )
    read_timeout: float = Field(
        default=10.0, gt=0, description="Seconds to wait for the request bytes once connected"
    )
    buffer_size: int = Field(
        default=4096, ge=64, description="Maximum bytes read from the redirect request"
    )
    backlog: int = Field(default=1, ge=1)
    poll_interval: float = Field(
        default=0.25, gt=0, description="Accept poll slice used to notice cancellation"
    )
    open_browser: bool = Field(
        default=True, description="Launch the system browser at the authorization URL"
    )


class WebAuthConfig(BaseModel):
    """Top-level configuration stored in ``<config_dir>/config.json``."""

    listener: ListenerConfig = Field(default_factory=ListenerConfig)
    verifier_bytes: int = Field(
        default=32,
        ge=32,
        le=96,
        description="Random bytes per code verifier (43..128 encoded characters)",
    )
