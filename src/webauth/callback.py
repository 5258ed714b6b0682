"""Helpers for reading the callback URL produced by the loopback listener.

The listener passes the redirect's query string through untouched; these
functions turn it into a parameter mapping and check the ``state`` value
the caller sent with the authorization request.
"""

from __future__ import annotations

import secrets
from urllib.parse import parse_qsl, urlsplit

from webauth.exceptions import StateMismatchError


def parse_callback_params(callback_url: str) -> dict[str, str]:
    """Return the percent-decoded query parameters of *callback_url*.

    Repeated keys keep their last value. A URL without a query string gives
    an empty dict.

    Example::

        >>> parse_callback_params("myapp://callback?code=abc%20123&state=xyz")
        {'code': 'abc 123', 'state': 'xyz'}
    """
    query = urlsplit(callback_url).query
    return dict(parse_qsl(query, keep_blank_values=True))


def verify_state(params: dict[str, str], expected_state: str) -> None:
    """Check that the callback's ``state`` matches *expected_state*.

    The comparison is constant-time.

    Raises:
        StateMismatchError: If ``state`` is missing or differs.
    """
    state = params.get("state")
    if state is None:
        raise StateMismatchError("Callback is missing the 'state' parameter")
    if not secrets.compare_digest(state.encode("utf-8"), expected_state.encode("utf-8")):
        raise StateMismatchError("Callback 'state' does not match the authorization request")


def callback_error(params: dict[str, str]) -> str | None:
    """Return a readable authorization error from *params*, if any.

    Authorization servers report a denied or failed request with ``error``
    and an optional ``error_description``.
    """
    error = params.get("error")
    if not error:
        return None
    description = params.get("error_description", "")
    if description:
        return f"{error} - {description}"
    return error
