"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~webauth.exceptions.WebAuthError` subclass.
Shell wrappers can inspect the exit code to tell a system failure apart
from a login the user simply did not finish.

Example::

    $ webauth login "https://auth.example.com/authorize?client_id=abc" --scheme myapp
    $ echo $?
    7   # EXIT_NO_RESULT -- the browser never redirected back
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_RANDOM_ERROR = 3
"""The secure random source was unavailable."""

EXIT_HASH_ERROR = 4
"""The SHA-256 provider failed."""

EXIT_SOCKET_ERROR = 5
"""The loopback listener could not be created, bound, or put into listen mode."""

EXIT_STATE_MISMATCH = 6
"""The ``state`` parameter returned by the authorization server did not match."""

EXIT_NO_RESULT = 7
"""The login was abandoned: no usable redirect arrived before the timeout."""
