"""Domain errors raised by core operations.

The web layer maps each class to an HTTP status code; the CLI prints the
message. The message is always safe to show to the user.
"""


class OlympiadError(Exception):
    """Base class for olympiad domain errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(OlympiadError):
    """Raised when a referenced record does not exist."""

    status_code = 404


class RuleViolationError(OlympiadError):
    """Raised when input breaks a competition rule or required field check."""

    status_code = 400


class ConflictError(OlympiadError):
    """Raised when a record would duplicate an existing one."""

    status_code = 409


class AuthError(OlympiadError):
    """Raised when credentials or a session are missing or invalid."""

    status_code = 401
