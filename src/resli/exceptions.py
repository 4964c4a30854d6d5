"""Exception hierarchy for resli.

All exceptions inherit from :class:`ResliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`resli.exit_codes`.
The top-level error handler in :func:`resli.app.main` catches
``ResliError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    ResliError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- AuthError               (exit 3)
    +-- NotFoundError           (exit 4)
    +-- ServerError             (exit 5)
    +-- ClientError             (exit 9)
    +-- ConnectionError_        (exit 6)
    |   +-- RequestTimeoutError (exit 6)
    +-- SpecParseError          (exit 7)
    +-- LinkParseError          (exit 8)
    +-- ContentTypeError        (exit 1)
    +-- ConfigError             (exit 1)
        +-- TLSConfigError      (exit 1)
"""

from resli.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CLIENT_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_LINK_PARSE_ERROR,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
    EXIT_SPEC_PARSE_ERROR,
)


class ResliError(Exception):
    """Base exception for all resli errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`resli.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ResliError):
    """Raised for invalid CLI arguments, unknown profiles or malformed overrides."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(ResliError):
    """Raised when auth injection fails or the server rejects credentials."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(ResliError):
    """Raised when the API returns HTTP 404 in fail mode."""

    exit_code = EXIT_NOT_FOUND


class ServerError(ResliError):
    """Raised when the API returns an HTTP 5xx status in fail mode."""

    exit_code = EXIT_SERVER_ERROR


class ClientError(ResliError):
    """Raised for any other HTTP 4xx status in fail mode."""

    exit_code = EXIT_CLIENT_ERROR


class ConnectionError_(ResliError):
    """Raised on network-level failures (DNS resolution, connection refused, TLS).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class RequestTimeoutError(ConnectionError_):
    """Raised when the final attempt of a request exceeds its timeout."""


class SpecParseError(ResliError):
    """Raised when an API description cannot be fetched or parsed."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class LinkParseError(ResliError):
    """Raised when a link header or hypermedia body is malformed."""

    exit_code = EXIT_LINK_PARSE_ERROR


class ContentTypeError(ResliError):
    """Raised when a body cannot be encoded or decoded for its content type."""

    exit_code = EXIT_GENERIC_FAILURE


class ConfigError(ResliError):
    """Raised for configuration problems (invalid JSON, bad profile data, unreadable files)."""

    exit_code = EXIT_GENERIC_FAILURE


class TLSConfigError(ConfigError):
    """Raised when TLS material (certificates, keys, hardware tokens) cannot be loaded."""
