"""Error taxonomy shared by the login and grade extraction flows.

Every error carries a short machine-readable ``kind`` and the HTTP status the
server answers with, so callers can route UI feedback without parsing text.
"""


class GradeWatchError(Exception):
    """Base class for errors surfaced to callers."""

    kind = "INTERNAL_ERROR"
    status_code = 500
    default_message = "An internal error occurred. Please try again later."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(GradeWatchError):
    """Raised when a caller omits a required field."""

    kind = "INVALID_ARGUMENT"
    status_code = 400
    default_message = "Missing required arguments"


class AuthenticationError(GradeWatchError):
    """Raised when the portal login does not produce a session."""

    kind = "AUTH_FAILED"
    status_code = 401
    default_message = "Invalid credentials"


class UnknownIdentifier(AuthenticationError):
    """Raised when the portal rejects the username step."""

    kind = "UNKNOWN_IDENTIFIER"
    default_message = "Username does not exist"


class InvalidSecret(AuthenticationError):
    """Raised when the portal rejects the password step."""

    kind = "INVALID_SECRET"
    default_message = "Invalid password"


class AuthTimeout(AuthenticationError):
    """Raised when neither the next field nor an alert shows up in time."""

    kind = "AUTH_TIMEOUT"
    default_message = "Login timed out. Please try again."


class AuthFailed(AuthenticationError):
    """Raised when the login form is submitted but the portal stays on it."""

    pass


class SessionExpired(GradeWatchError):
    """Raised when replayed cookies land on the login page."""

    kind = "SESSION_EXPIRED"
    status_code = 401
    default_message = "Session expired. Please login again."


class UpstreamUnreachable(GradeWatchError):
    """Raised when the portal cannot be reached after all attempts."""

    kind = "UPSTREAM_UNREACHABLE"
    status_code = 504
    default_message = "The portal is unreachable. Please try again later."


class ExtractionFailed(GradeWatchError):
    """Raised when the grade report cannot be scraped."""

    kind = "EXTRACTION_FAILED"
    status_code = 500
    default_message = "Failed to fetch grades. Please try again."


ERROR_CLASSES = (
    GradeWatchError,
    InvalidArgument,
    AuthenticationError,
    UnknownIdentifier,
    InvalidSecret,
    AuthTimeout,
    AuthFailed,
    SessionExpired,
    UpstreamUnreachable,
    ExtractionFailed,
)

ERROR_STATUS_CODES: dict[str, int] = {cls.kind: cls.status_code for cls in ERROR_CLASSES}


def status_code_for(kind: str) -> int:
    """Return the HTTP status for an error kind, 500 for unknown kinds."""
    return ERROR_STATUS_CODES.get(kind, 500)
