"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~eggcarton.exceptions.EggCartonError` subclass.
Shell wrappers can inspect the exit code to tell an expired session from a
network outage without parsing stderr.

Example::

    $ egg get api_key
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- not logged in or the session could not be renewed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed, was cancelled, or the session could not be renewed."""

EXIT_NOT_FOUND = 4
"""The requested secret was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an error response."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_COMMAND_NOT_FOUND = 127
"""The command passed to ``egg hatch`` could not be found."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C."""
