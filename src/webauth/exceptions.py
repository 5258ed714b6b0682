"""Exception hierarchy for webauth.

All exceptions inherit from :class:`WebAuthError`, which carries two
class-level attributes:

* ``exit_code`` -- a constant from :mod:`webauth.exit_codes`, used by
  :func:`webauth.app.main` to pick the process exit status.
* ``code`` -- a short string such as ``"SOCKET_ERROR"`` that
  :mod:`webauth.bridge` exposes on rejected futures, so callers can branch
  on the failure kind without parsing messages.

Subclass hierarchy::

    WebAuthError           (exit 1, WEBAUTH_ERROR)
    +-- InvalidUsageError  (exit 2, INVALID_USAGE)
    +-- RandomSourceError  (exit 3, RANDOM_ERROR)
    +-- HashProviderError  (exit 4, HASH_ERROR)
    +-- ListenerBindError  (exit 5, SOCKET_ERROR)
    +-- StateMismatchError (exit 6, STATE_MISMATCH)
    +-- ConfigError        (exit 1, CONFIG_ERROR)

An abandoned login is not an exception: the listener resolves with ``None``.
"""

from webauth.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_HASH_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_RANDOM_ERROR,
    EXIT_SOCKET_ERROR,
    EXIT_STATE_MISMATCH,
)


class WebAuthError(Exception):
    """Base exception for all webauth errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    code: str = "WEBAUTH_ERROR"

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(WebAuthError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE
    code = "INVALID_USAGE"


class RandomSourceError(WebAuthError):
    """Raised when the operating system's secure random source is unavailable."""

    exit_code = EXIT_RANDOM_ERROR
    code = "RANDOM_ERROR"


class HashProviderError(WebAuthError):
    """Raised when the SHA-256 provider fails to initialise, update, or finalise.

    The message names the failing stage; the error kind is the same for all
    three.
    """

    exit_code = EXIT_HASH_ERROR
    code = "HASH_ERROR"


class ListenerBindError(WebAuthError):
    """Raised when the loopback socket cannot be created, bound, or put into listen mode."""

    exit_code = EXIT_SOCKET_ERROR
    code = "SOCKET_ERROR"


class StateMismatchError(WebAuthError):
    """Raised when a callback's ``state`` parameter is missing or does not match."""

    exit_code = EXIT_STATE_MISMATCH
    code = "STATE_MISMATCH"


class ConfigError(WebAuthError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE
    code = "CONFIG_ERROR"
