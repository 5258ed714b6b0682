"""PKCE (Proof Key for Code Exchange) material for the authorization request.

The verifier is 32 secure random bytes rendered as base64url, giving 256
bits of entropy in 43 characters of the RFC 7636 unreserved alphabet. The
``S256`` challenge is ``base64url(sha256(verifier))``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from webauth.crypto import base64url_encode, secure_random_bytes, sha256

DEFAULT_VERIFIER_BYTES = 32
CHALLENGE_METHOD = "S256"

_VERIFIER_RE = re.compile(r"^[A-Za-z0-9\-._~]{43,128}$")


class InvalidVerifierError(ValueError):
    """Raised when a code verifier is outside the RFC 7636 charset or length range."""

    code = "INVALID_VERIFIER"


@dataclass(frozen=True)
class PKCEPair:
    verifier: str
    challenge: str
    method: str = CHALLENGE_METHOD


def generate_code_verifier(num_bytes: int = DEFAULT_VERIFIER_BYTES) -> str:
    """Return a fresh code verifier.

    Raises:
        RandomSourceError: Propagated unchanged from the random source.
    """
    return base64url_encode(secure_random_bytes(num_bytes))


def sha256_base64url(text: str) -> str:
    """Hash *text* (UTF-8) with SHA-256 and return the base64url digest.

    For a code verifier this is exactly its ``S256`` code challenge, but any
    string may be hashed.

    Raises:
        HashProviderError: If the digest provider fails.
    """
    return base64url_encode(sha256(text.encode("utf-8")))


def generate_code_challenge(verifier: str) -> str:
    """Return the ``S256`` challenge for *verifier* after validating it.

    Raises:
        InvalidVerifierError: If *verifier* is not a valid RFC 7636 verifier.
    """
    if not _VERIFIER_RE.match(verifier):
        raise InvalidVerifierError(
            "Code verifier must be 43-128 characters of [A-Za-z0-9-._~]"
        )
    return sha256_base64url(verifier)


def generate_pkce_pair(num_bytes: int = DEFAULT_VERIFIER_BYTES) -> PKCEPair:
    verifier = generate_code_verifier(num_bytes)
    return PKCEPair(verifier=verifier, challenge=generate_code_challenge(verifier))
