"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~resli.exceptions.ResliError` subclass. Scripts
wrapping ``resli`` can branch on the exit code without parsing stderr.

HTTP error statuses only produce a non-zero exit code when ``--fail`` is
given; otherwise they are ordinary responses and the command exits 0.

Example::

    $ resli --fail get api.example.com/items/42
    $ echo $?
    4   # EXIT_NOT_FOUND -- the server answered 404
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or an unknown profile."""

EXIT_AUTH_FAILURE = 3
"""Auth injection failed, or the server answered 401/403 in fail mode."""

EXIT_NOT_FOUND = 4
"""The server answered 404 in fail mode."""

EXIT_SERVER_ERROR = 5
"""The server answered 5xx in fail mode."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_SPEC_PARSE_ERROR = 7
"""The API description could not be fetched or parsed."""

EXIT_LINK_PARSE_ERROR = 8
"""A response carried malformed hypermedia links."""

EXIT_CLIENT_ERROR = 9
"""The server answered another 4xx status in fail mode."""
