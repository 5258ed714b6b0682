"""One-shot loopback listener that catches the OAuth redirect.

:func:`authenticate` (or :meth:`LoopbackRedirectHandler.authenticate`)
runs a single login attempt on a dedicated background thread and returns a
:class:`concurrent.futures.Future` immediately. The attempt:

1. binds an IPv4 TCP socket to ``127.0.0.1`` on an OS-assigned port and
   listens with a backlog of 1;
2. appends ``redirect_uri=http://127.0.0.1:{port}/callback`` to the
   authorization URL and opens it in the system browser;
3. accepts exactly one connection within the configured timeout (60 s by
   default), reads at most 4096 bytes, always answers with a fixed
   ``200 OK`` page, and closes both sockets;
4. parses the ``GET <target> HTTP`` request line and resolves the future
   with ``"{scheme}://callback?{query}"``.

Only socket setup failures reject the future (with
:class:`~webauth.exceptions.ListenerBindError`). A timeout, a cancelled
attempt, an empty read, an unparseable request line, or a callback
without a query string all resolve the future with ``None``: an abandoned
login is a normal outcome, not a fault.

Request parameters (``code``, ``state``, ``error``) are passed through
unvalidated; see :mod:`webauth.callback` for helpers.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
import webbrowser
from concurrent.futures import Future
from typing import Any, Callable, Optional

from webauth.exceptions import ListenerBindError
from webauth.models import ListenerConfig

logger = logging.getLogger(__name__)

Opener = Callable[[str], Any]
"""Callable that launches a URL, e.g. :func:`webbrowser.open`."""

RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/html\r\n"
    b"Connection: close\r\n"
    b"\r\n"
    b"<html><body><p>Authentication complete. You may close this tab.</p>"
    b"<script>window.close()</script></body></html>"
)
"""Fixed response sent to the browser once any request bytes are read."""


# ------------------------------------------------------------------ #
# Pure helpers
# ------------------------------------------------------------------ #


def build_redirect_uri(
    port: int, host: str = "127.0.0.1", path: str = "/callback"
) -> str:
    """Return the loopback redirect URI for *port*."""
    return f"http://{host}:{port}{path}"


def build_authorization_url(authorization_url: str, redirect_uri: str) -> str:
    """Append ``redirect_uri`` to *authorization_url* as a query parameter.

    Uses ``&`` when the URL already has a query string and ``?`` otherwise.
    The redirect URI is appended verbatim, not percent-encoded.
    """
    separator = "&" if "?" in authorization_url else "?"
    return f"{authorization_url}{separator}redirect_uri={redirect_uri}"


def parse_request_line(data: bytes) -> Optional[str]:
    """Extract the request target from a ``GET <target> HTTP...`` request line.

    Only the first line of *data* is examined. It must split on whitespace
    into exactly three tokens: the literal method ``GET``, a target
    starting with ``/``, and a protocol token starting with ``HTTP``.
    Headers and the HTTP version are ignored.

    Args:
        data: Raw bytes received from the browser.

    Returns:
        The request target (path plus optional query), or ``None`` if the
        request line does not have the expected shape.
    """
    text = data.decode("latin-1")
    line = text.split("\n", 1)[0].rstrip("\r")
    parts = line.split()
    if len(parts) != 3:
        return None
    method, target, protocol = parts
    if method != "GET" or not target.startswith("/") or not protocol.startswith("HTTP"):
        return None
    return target


def extract_callback_url(data: bytes, callback_scheme: str) -> Optional[str]:
    """Rebuild the app callback URL from a raw redirect request.

    Args:
        data: Raw bytes received from the browser.
        callback_scheme: Custom URL scheme of the calling application.

    Returns:
        ``"{callback_scheme}://callback?{query}"`` with the query carried
        through verbatim, or ``None`` if the request line does not parse or
        carries no query parameters.

    A target ending in a bare ``?`` counts as carrying no query and gives
    ``None`` rather than an empty ``"{callback_scheme}://callback?"``.
    """
    target = parse_request_line(data)
    if target is None:
        logger.debug("Redirect request line did not parse")
        return None
    query_start = target.find("?")
    if query_start < 0 or query_start == len(target) - 1:
        logger.debug("Redirect carried no query string")
        return None
    return f"{callback_scheme}://callback{target[query_start:]}"


# ------------------------------------------------------------------ #
# Listener session
# ------------------------------------------------------------------ #


class ListenerSession:
    """Socket state for a single login attempt.

    Owns the listening socket and the one accepted connection. Use it as a
    context manager so both sockets are closed on every exit path::

        with ListenerSession(config) as session:
            port = session.open()
            if session.accept():
                data = session.read_request()

    Args:
        config: Listener settings (address, timeouts, buffer size).
    """

    def __init__(self, config: ListenerConfig) -> None:
        self.config = config
        self.port: Optional[int] = None
        self._sock: Optional[socket.socket] = None
        self._conn: Optional[socket.socket] = None

    def __enter__(self) -> ListenerSession:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def open(self) -> int:
        """Create, bind, and listen on an ephemeral loopback port.

        Returns:
            The port number assigned by the operating system.

        Raises:
            ListenerBindError: If the socket cannot be created, bound, or
                put into listen mode.
        """
        try:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as exc:
            raise ListenerBindError(f"Failed to create socket: {exc}") from exc

        try:
            self._sock.bind((self.config.host, 0))
        except OSError as exc:
            raise ListenerBindError(f"Failed to bind socket: {exc}") from exc

        try:
            self._sock.listen(self.config.backlog)
        except OSError as exc:
            raise ListenerBindError(f"Failed to listen on socket: {exc}") from exc

        self.port = self._sock.getsockname()[1]
        logger.debug("Loopback listener bound to %s:%d", self.config.host, self.port)
        return self.port

    def accept(self, cancel: Optional[threading.Event] = None) -> bool:
        """Wait for the single inbound connection.

        The wait is bounded by ``config.timeout`` and polled in
        ``config.poll_interval`` slices so that *cancel* is noticed.

        Returns:
            ``True`` if a connection was accepted, ``False`` on timeout,
            cancellation, or accept error.
        """
        if self._sock is None:
            raise RuntimeError("session not open")
        deadline = time.monotonic() + self.config.timeout
        while True:
            if cancel is not None and cancel.is_set():
                logger.info("Login attempt cancelled")
                return False
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.info("No redirect received within %.1fs", self.config.timeout)
                return False
            self._sock.settimeout(min(remaining, self.config.poll_interval))
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                logger.debug("Accept failed: %s", exc)
                return False
            self._conn = conn
            return True

    def read_request(self) -> bytes:
        """Read the redirect request with a single bounded ``recv``.

        Returns:
            Up to ``config.buffer_size`` bytes; empty on EOF, timeout, or
            read error.
        """
        if self._conn is None:
            raise RuntimeError("no accepted connection")
        self._conn.settimeout(self.config.read_timeout)
        try:
            data = self._conn.recv(self.config.buffer_size)
        except OSError as exc:
            logger.debug("Read from redirect connection failed: %s", exc)
            return b""
        logger.debug("Read %d bytes from redirect connection", len(data))
        return data

    def respond(self) -> None:
        """Send the fixed completion page to the browser."""
        if self._conn is None:
            raise RuntimeError("no accepted connection")
        try:
            self._conn.sendall(RESPONSE)
        except OSError as exc:
            logger.debug("Could not send completion page: %s", exc)

    def close(self) -> None:
        """Close the accepted connection and the listening socket."""
        for sock in (self._conn, self._sock):
            if sock is not None:
                sock.close()
        self._conn = None
        self._sock = None


# ------------------------------------------------------------------ #
# Handler
# ------------------------------------------------------------------ #


class LoopbackRedirectHandler:
    """Run login attempts against a one-shot loopback listener.

    The handler itself holds only configuration; every call to
    :meth:`authenticate` owns its own socket, port, and timeout, so
    concurrent attempts do not interfere.

    Args:
        config: Listener settings. Defaults to :class:`ListenerConfig`.
        opener: Callable used to launch the authorization URL. Defaults to
            :func:`webbrowser.open`, or to logging the URL when
            ``config.open_browser`` is false.
    """

    def __init__(
        self,
        config: Optional[ListenerConfig] = None,
        opener: Optional[Opener] = None,
    ) -> None:
        self.config = config or ListenerConfig()
        if opener is None:
            opener = webbrowser.open if self.config.open_browser else _log_url
        self._opener = opener

    def authenticate(
        self,
        authorization_url: str,
        callback_scheme: str,
        cancel: Optional[threading.Event] = None,
    ) -> Future[Optional[str]]:
        """Start a login attempt on a background thread.

        Args:
            authorization_url: Authorization endpoint URL, typically already
                carrying ``client_id``, ``code_challenge`` and friends.
            callback_scheme: Custom scheme used to rebuild the callback URL.
            cancel: Optional event; setting it ends the wait early and
                resolves the future with ``None``.

        Returns:
            A future resolving to the callback URL or ``None``. It fails
            with :class:`~webauth.exceptions.ListenerBindError` only when
            the listener cannot be set up.
        """
        future: Future[Optional[str]] = Future()
        thread = threading.Thread(
            target=self._run,
            args=(authorization_url, callback_scheme, future, cancel),
            name="webauth-loopback",
            daemon=True,
        )
        thread.start()
        return future

    def _run(
        self,
        authorization_url: str,
        callback_scheme: str,
        future: Future[Optional[str]],
        cancel: Optional[threading.Event],
    ) -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            callback_url = self._attempt(authorization_url, callback_scheme, cancel)
        except Exception as exc:
            if not isinstance(exc, ListenerBindError):
                logger.exception("Login attempt failed unexpectedly")
            future.set_exception(exc)
            return
        future.set_result(callback_url)

    def _attempt(
        self,
        authorization_url: str,
        callback_scheme: str,
        cancel: Optional[threading.Event],
    ) -> Optional[str]:
        with ListenerSession(self.config) as session:
            port = session.open()
            redirect_uri = build_redirect_uri(
                port, self.config.host, self.config.callback_path
            )
            self._dispatch(build_authorization_url(authorization_url, redirect_uri))

            if not session.accept(cancel):
                return None
            data = session.read_request()
            if not data:
                return None
            session.respond()

        callback_url = extract_callback_url(data, callback_scheme)
        if callback_url is not None:
            logger.info("Received authorization redirect on port %d", port)
        return callback_url

    def _dispatch(self, url: str) -> None:
        """Launch *url*; failures surface later as an abandoned login."""
        try:
            opened = self._opener(url)
        except Exception as exc:
            logger.warning("Could not open browser: %s", exc)
            return
        if opened is False:
            logger.warning("No browser accepted the authorization URL")


def _log_url(url: str) -> None:
    logger.info("Open this URL to continue: %s", url)


def authenticate(
    authorization_url: str,
    callback_scheme: str,
    *,
    config: Optional[ListenerConfig] = None,
    cancel: Optional[threading.Event] = None,
    opener: Optional[Opener] = None,
) -> Future[Optional[str]]:
    """Start a one-shot loopback login; see :meth:`LoopbackRedirectHandler.authenticate`."""
    handler = LoopbackRedirectHandler(config=config, opener=opener)
    return handler.authenticate(authorization_url, callback_scheme, cancel)
