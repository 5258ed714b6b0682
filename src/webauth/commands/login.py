"""Login command -- run the authorization step through the system browser.

Implements ``webauth login``. The command starts a one-shot loopback
listener, opens the authorization URL with an injected ``redirect_uri``,
waits for the browser to come back, and prints the rebuilt
``<scheme>://callback?...`` URL on stdout. Exchanging the returned code for
tokens is left to the caller.
"""

from __future__ import annotations

import threading
import webbrowser
from typing import Optional

import typer

from webauth.exit_codes import EXIT_NO_RESULT
from webauth.output import (
    OutputFormat,
    debug,
    format_response,
    get_output,
    info,
    print_data,
    success,
    warning,
)


def login_command(
    url: str = typer.Argument(
        help="Authorization URL; redirect_uri is appended automatically."
    ),
    scheme: str = typer.Option(
        ..., "--scheme", "-s", help="Callback URL scheme of the calling app."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="Seconds to wait for the redirect."
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the URL instead of opening a browser."
    ),
    state: Optional[str] = typer.Option(
        None, "--state", help="Expected 'state' value to verify in the callback."
    ),
) -> None:
    """Open the browser at URL and wait for the OAuth redirect.

    Exits with code 7 when no usable redirect arrives before the timeout,
    and code 6 when ``--state`` is given and the callback does not match.

    Raises:
        typer.Exit: With ``EXIT_NO_RESULT`` when the login was abandoned.
        StateMismatchError: If ``--state`` does not match the callback.
        ListenerBindError: If the loopback listener cannot be set up.

    Example::

        webauth login "https://auth.example.com/authorize?client_id=abc&code_challenge=..." \\
            --scheme myapp --state 4f1c
    """
    from webauth.callback import callback_error, parse_callback_params, verify_state
    from webauth.config import resolve_config
    from webauth.loopback import LoopbackRedirectHandler

    listener = resolve_config(cli_timeout=timeout, cli_no_browser=no_browser).listener

    def opener(full_url: str) -> Optional[bool]:
        if listener.open_browser:
            debug(f"Opening browser at {full_url}")
            return webbrowser.open(full_url)
        typer.echo("Open this URL in your browser to continue:", err=True)
        typer.echo(full_url, err=True)
        return None

    cancel = threading.Event()
    handler = LoopbackRedirectHandler(listener, opener=opener)
    future = handler.authenticate(url, scheme, cancel)
    info(f"Waiting up to {listener.timeout:g}s for the browser redirect...")
    try:
        callback_url = future.result()
    finally:
        cancel.set()

    if callback_url is None:
        warning("No authorization redirect received.")
        raise typer.Exit(code=EXIT_NO_RESULT)

    params = parse_callback_params(callback_url)
    if state is not None:
        verify_state(params, state)

    reason = callback_error(params)
    if reason:
        warning(f"Authorization server reported an error: {reason}")
    else:
        success("Authorization redirect received.")

    if get_output().format == OutputFormat.JSON:
        format_response({"callback_url": callback_url, "params": params})
    else:
        print_data(callback_url)
