"""webauth -- OAuth 2.0 Authorization Code + PKCE via the system browser.

This package runs the native half of a desktop OAuth login without an
embedded browser: it generates PKCE material, opens the user's default
browser at the authorization URL, catches the redirect on a one-shot
loopback HTTP listener, and hands the callback URL back to the caller.

Typical workflow::

    from webauth import authenticate, generate_pkce_pair

    pair = generate_pkce_pair()
    future = authenticate(auth_url_with_challenge, "myapp")
    callback_url = future.result()   # "myapp://callback?code=..." or None

Token exchange is left to the caller.

Modules:
    crypto: Secure random bytes, base64url and SHA-256 transforms.
    pkce: Code verifier and S256 code challenge generation.
    loopback: One-shot loopback redirect listener.
    callback: Parsing and ``state`` verification for callback URLs.
    bridge: Promise-style facade returning futures with error codes.
    models: Pydantic configuration models.
    config: XDG-aware configuration loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code and error-code mapping.
    app: Typer application and CLI entry point.
"""

__version__ = "0.1.0"

from webauth.loopback import LoopbackRedirectHandler, authenticate  # noqa: E402
from webauth.pkce import (  # noqa: E402
    PKCEPair,
    generate_code_challenge,
    generate_code_verifier,
    generate_pkce_pair,
    sha256_base64url,
)

__all__ = [
    "LoopbackRedirectHandler",
    "PKCEPair",
    "authenticate",
    "generate_code_challenge",
    "generate_code_verifier",
    "generate_pkce_pair",
    "sha256_base64url",
]
