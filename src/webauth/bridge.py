"""Promise-style facade over the webauth operations.

Host applications that drive login from an event loop or a UI thread expect
each operation to hand back a single-shot result object that either
resolves with a value or rejects with an error *code* and *message*.
:class:`WebAuthModule` provides exactly that shape using
:class:`concurrent.futures.Future`:

==========================  ==========================  ================
Method                      Resolves with               Rejects with
==========================  ==========================  ================
``generate_code_verifier``  verifier string             ``RANDOM_ERROR``
``sha256``                  base64url SHA-256 digest    ``HASH_ERROR``
``authenticate``            callback URL or ``None``    ``SOCKET_ERROR``
==========================  ==========================  ================

The synchronous operations return futures that are already settled. The
rejection value is always a :class:`~webauth.exceptions.WebAuthError`, so
``future.exception().code`` and ``.message`` are available.

Example::

    module = WebAuthModule()
    verifier = module.generate_code_verifier().result()
    challenge = module.sha256(verifier).result()
    callback_url = module.authenticate(url, "myapp").result()
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Callable, Optional, TypeVar

from webauth.exceptions import HashProviderError, RandomSourceError
from webauth.loopback import LoopbackRedirectHandler, Opener
from webauth.models import WebAuthConfig
from webauth.pkce import generate_code_verifier, sha256_base64url

T = TypeVar("T")


def _settled(func: Callable[[], T], *errors: type[Exception]) -> Future[T]:
    """Run *func* now and return a future carrying its value or one of *errors*."""
    future: Future[T] = Future()
    try:
        value = func()
    except errors as exc:
        future.set_exception(exc)
    else:
        future.set_result(value)
    return future


class WebAuthModule:
    """Host-facing entry points returning single-resolution futures.

    Args:
        config: Global configuration; only ``listener`` and
            ``verifier_bytes`` are consulted.
        opener: Optional URL launcher passed through to the listener.
    """

    def __init__(
        self,
        config: Optional[WebAuthConfig] = None,
        opener: Optional[Opener] = None,
    ) -> None:
        self.config = config or WebAuthConfig()
        self._handler = LoopbackRedirectHandler(self.config.listener, opener)

    def generate_code_verifier(self) -> Future[str]:
        return _settled(
            lambda: generate_code_verifier(self.config.verifier_bytes),
            RandomSourceError,
        )

    def sha256(self, input: str) -> Future[str]:
        """Return a settled future with the base64url SHA-256 digest of *input*."""
        return _settled(lambda: sha256_base64url(input), HashProviderError)

    def authenticate(
        self,
        url: str,
        callback_scheme: str,
        cancel: Optional[threading.Event] = None,
    ) -> Future[Optional[str]]:
        """Start a loopback login; see :meth:`LoopbackRedirectHandler.authenticate`."""
        return self._handler.authenticate(url, callback_scheme, cancel)
