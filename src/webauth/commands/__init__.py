"""Built-in CLI sub-commands for webauth.

* :mod:`~webauth.commands.pkce` -- print verifiers and S256 challenges.
* :mod:`~webauth.commands.login` -- run a loopback browser login.
* :mod:`~webauth.commands.config` -- view and modify global settings.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``config``) or plain callback functions
registered directly on the root app (for single commands like ``login``).
"""
