"""Exception hierarchy for eggcarton.

All exceptions inherit from :class:`EggCartonError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`eggcarton.exit_codes`.
The top-level error handler in :func:`eggcarton.app.main` catches
``EggCartonError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    EggCartonError            (exit 1)
    +-- ConfigError           (exit 1)
    +-- InvalidUsageError     (exit 2)
    +-- AuthError             (exit 3)
    |   +-- EntropyError
    |   +-- FlowError
    |   |   +-- ListenerError
    |   |   +-- CallbackTimeoutError
    |   |   +-- LoginCancelledError
    |   |   +-- ProviderError
    |   |   +-- MissingCodeError
    |   +-- TokenExchangeError
    |   |   +-- NetworkError          (exit 6)
    |   |   +-- ProviderRejectedError
    |   |   +-- MalformedResponseError
    |   +-- NotLoggedInError
    |   +-- SessionExpiredError
    |   +-- InvalidTokenError
    +-- ApiError              (exit 5)
    |   +-- NotFoundError     (exit 4)
    |   +-- ServerError
    +-- ConnectionError_      (exit 6)
    +-- CommandNotFoundError  (exit 127)
"""

from eggcarton.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_COMMAND_NOT_FOUND,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class EggCartonError(Exception):
    """Base exception for all eggcarton errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`eggcarton.exit_codes`. The entry point catches
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


class ConfigError(EggCartonError):
    """Raised for configuration problems (missing settings, invalid JSON)."""

    exit_code = EXIT_GENERIC_FAILURE


class InvalidUsageError(EggCartonError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


# --- Authentication ---


class AuthError(EggCartonError):
    """Raised when authentication fails or no usable session exists."""

    exit_code = EXIT_AUTH_FAILURE


class EntropyError(AuthError):
    """Raised when the OS randomness source is unavailable.

    The PKCE verifier must come from a cryptographically secure source; there
    is no fallback.
    """


class FlowError(AuthError):
    """Base class for failures of the interactive browser login."""


class ListenerError(FlowError):
    """Raised when the local callback listener cannot bind its port."""


class CallbackTimeoutError(FlowError):
    """Raised when no callback arrived before the login deadline."""


class LoginCancelledError(FlowError):
    """Raised when the login was cancelled before a callback arrived."""


class ProviderError(FlowError):
    """Raised when the identity provider redirected back with an ``error``.

    Args:
        reason: The provider-supplied error string.
        description: Optional ``error_description`` sent alongside it.
    """

    def __init__(self, reason: str, description: str | None = None):
        detail = f"{reason} - {description}" if description else reason
        super().__init__(f"Identity provider returned an error: {detail}")
        self.reason = reason
        self.description = description


class MissingCodeError(FlowError):
    """Raised when the callback carried neither ``code`` nor ``error``."""


class TokenExchangeError(AuthError):
    """Base class for token endpoint failures (code exchange and refresh)."""


class NetworkError(TokenExchangeError):
    """Raised on connection failures or timeouts talking to the token endpoint."""

    exit_code = EXIT_CONNECTION_ERROR


class ProviderRejectedError(TokenExchangeError):
    """Raised when the token endpoint answers with a non-success status.

    Args:
        operation: Which step failed (``"Token exchange"``, ``"Token refresh"``).
        status: HTTP status code returned by the provider.
        body: Raw response body, kept for diagnosis.
    """

    def __init__(self, operation: str, status: int, body: str):
        super().__init__(f"{operation} failed with status {status}: {body}")
        self.status = status
        self.body = body


class MalformedResponseError(TokenExchangeError):
    """Raised when a token response cannot be parsed into the expected fields."""


class NotLoggedInError(AuthError):
    """Raised when a command needs a session but no credentials are stored."""


class SessionExpiredError(AuthError):
    """Raised when the stored session expired and cannot be refreshed."""


class InvalidTokenError(AuthError):
    """Raised when an access token cannot be decoded into a claim set."""


# --- Secret API ---


class ApiError(EggCartonError):
    """Raised when the secret API returns an unexpected 4xx status."""

    exit_code = EXIT_SERVER_ERROR


class NotFoundError(ApiError):
    """Raised when the API returns HTTP 404 or a requested secret is absent."""

    exit_code = EXIT_NOT_FOUND


class ServerError(ApiError):
    """Raised when the API returns an HTTP 5xx server error."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(EggCartonError):
    """Raised on network-level failures talking to the secret API.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class CommandNotFoundError(EggCartonError):
    """Raised when the command given to ``egg hatch`` does not exist."""

    exit_code = EXIT_COMMAND_NOT_FOUND
