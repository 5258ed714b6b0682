"""Secure randomness, base64url encoding, and SHA-256 digests.

These are the pure building blocks of PKCE. None of them touch the network
or keep state between calls, so they are safe to use from any thread.

Failures of the underlying providers are mapped onto the webauth
exception hierarchy:

* :class:`~webauth.exceptions.RandomSourceError` when the OS entropy source
  cannot deliver bytes.
* :class:`~webauth.exceptions.HashProviderError` when the digest provider
  fails; the message names the failing stage.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import secrets

from webauth.exceptions import HashProviderError, RandomSourceError

SHA256_DIGEST_SIZE = 32


def secure_random_bytes(n: int) -> bytes:
    """Return *n* cryptographically secure random bytes.

    Args:
        n: Number of bytes to draw. Must be non-negative.

    Returns:
        A fresh ``bytes`` object of length *n*.

    Raises:
        ValueError: If *n* is negative.
        RandomSourceError: If the operating system's entropy source is
            unavailable. The error is not retried.
    """
    if n < 0:
        raise ValueError(f"Cannot draw a negative number of bytes: {n}")
    try:
        data = secrets.token_bytes(n)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceError(f"Failed to generate random bytes: {exc}") from exc
    if len(data) != n:
        raise RandomSourceError(
            f"Failed to generate random bytes: got {len(data)} of {n}"
        )
    return data


def base64url_encode(data: bytes) -> str:
    """Encode *data* as unpadded base64url text.

    Uses the URL-safe alphabet (``-`` and ``_`` in place of ``+`` and ``/``)
    and strips every ``=`` padding character. Empty input yields ``""``.
    """
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def base64url_decode(text: str) -> bytes:
    """Decode unpadded base64url *text* back to bytes.

    Padding is recomputed from the length, so both padded and unpadded
    input are accepted.

    Raises:
        ValueError: If *text* is not valid base64url.
    """
    if "+" in text or "/" in text:
        raise ValueError("Not base64url: contains '+' or '/'")
    stripped = text.rstrip("=")
    if len(stripped) % 4 == 1:
        raise ValueError(f"Invalid base64url length: {len(stripped)}")
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64url text: {exc}") from exc


def sha256(data: bytes) -> bytes:
    """Return the 32-byte SHA-256 digest of *data*.

    Args:
        data: Arbitrary-length input.

    Returns:
        The raw digest bytes.

    Raises:
        TypeError: If *data* is not bytes-like.
        HashProviderError: If the digest provider cannot be opened, fails
            while hashing, or fails to finalise.
    """
    try:
        hasher = hashlib.new("sha256")
    except ValueError as exc:
        raise HashProviderError("Failed to open algorithm provider") from exc

    try:
        hasher.update(data)
    except ValueError as exc:
        raise HashProviderError("Failed to hash data") from exc

    try:
        digest = hasher.digest()
    except ValueError as exc:
        raise HashProviderError("Failed to finish hash") from exc

    if len(digest) != SHA256_DIGEST_SIZE:
        raise HashProviderError("Failed to finish hash")
    return digest
