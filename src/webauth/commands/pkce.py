"""PKCE commands -- generate verifiers and code challenges.

Implements ``webauth verifier``, ``webauth challenge`` and ``webauth pkce``.
Results go to stdout so they can be captured by shell scripts::

    VERIFIER=$(webauth verifier)
    CHALLENGE=$(webauth challenge "$VERIFIER")
"""

from __future__ import annotations

import typer

from webauth.output import print_data, print_table


def verifier_command() -> None:
    """Print a fresh PKCE code verifier.

    The verifier length follows ``verifier_bytes`` from the global config
    (32 random bytes, 43 characters, by default).
    """
    from webauth.config import load_config
    from webauth.pkce import generate_code_verifier

    print_data(generate_code_verifier(load_config().verifier_bytes))


def challenge_command(
    text: str = typer.Argument(help="Code verifier (or any text) to hash."),
) -> None:
    """Print the base64url SHA-256 digest of TEXT (its S256 code challenge)."""
    from webauth.pkce import sha256_base64url

    print_data(sha256_base64url(text))


def pkce_command() -> None:
    """Print a verifier, its S256 challenge and the challenge method.

    Example::

        webauth pkce
        webauth --json pkce
    """
    from webauth.config import load_config
    from webauth.pkce import generate_pkce_pair

    pair = generate_pkce_pair(load_config().verifier_bytes)
    print_table(
        ["verifier", "challenge", "method"],
        [[pair.verifier, pair.challenge, pair.method]],
        title="PKCE",
    )
