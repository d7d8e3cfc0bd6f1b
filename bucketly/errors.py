"""Custom exception classes and backend error mapping for the application."""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple

from firebase_admin import auth
from firebase_admin import exceptions as firebase_exceptions
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as google_auth_exceptions


class ErrorKind(str, Enum):
    """User-facing categories every backend failure is folded into."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    SESSION_EXPIRED = "session_expired"
    BAD_INPUT = "bad_input"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.SESSION_EXPIRED: 401,
    ErrorKind.BAD_INPUT: 400,
    ErrorKind.UNAVAILABLE: 503,
    ErrorKind.UNKNOWN: 500,
}


class AppError(Exception):
    """Base application error class."""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message, status_code=400, hint=None, kind=None):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.hint = hint
        if kind is not None:
            self.kind = kind

    def to_dict(self) -> dict[str, str | None]:
        """Serialize the error into a toast payload."""
        return {"kind": self.kind.value, "message": self.message, "hint": self.hint}


class ValidationError(AppError):
    """Raised when user input fails validation."""

    kind = ErrorKind.BAD_INPUT

    def __init__(self, message="Validation failed.", hint=None):
        """Initialize the error."""
        super().__init__(message, 400, hint)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    kind = ErrorKind.CONFLICT

    def __init__(self, message="Resource already exists.", hint=None):
        """Initialize the error."""
        super().__init__(message, 409, hint)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message="Resource not found.", hint=None):
        """Initialize the error."""
        super().__init__(message, 404, hint)


class ForbiddenError(AppError):
    """Raised when the current user may not act on a resource."""

    kind = ErrorKind.FORBIDDEN

    def __init__(
        self, message="You don't have permission to perform this action.", hint=None
    ):
        """Initialize the error."""
        super().__init__(message, 403, hint)


class SessionExpiredError(AppError):
    """Raised when the user's session or ID token is no longer valid."""

    kind = ErrorKind.SESSION_EXPIRED

    def __init__(self, message="Your session has expired.", hint=None):
        """Initialize the error."""
        super().__init__(message, 401, hint or "Please sign in again.")


class ServiceUnavailableError(AppError):
    """Raised when the backend cannot be reached."""

    kind = ErrorKind.UNAVAILABLE

    def __init__(self, message="Unable to connect to the server.", hint=None):
        """Initialize the error."""
        super().__init__(
            message, 503, hint or "Please check your internet connection."
        )


class BackendError(NamedTuple):
    kind: ErrorKind
    message: str
    hint: str | None


_NOT_FOUND = BackendError(
    ErrorKind.NOT_FOUND,
    "The requested item was not found.",
    "It may have been deleted or you may not have access to it.",
)
_DUPLICATE = BackendError(
    ErrorKind.CONFLICT,
    "This item already exists.",
    "Try using a different name or value.",
)
_RELATED_DATA = BackendError(
    ErrorKind.CONFLICT,
    "This action conflicts with related data.",
    "Make sure related items exist and try again.",
)
_FORBIDDEN = BackendError(
    ErrorKind.FORBIDDEN,
    "You don't have permission to perform this action.",
    "Make sure you are signed in with the right account.",
)
_SESSION_EXPIRED = BackendError(
    ErrorKind.SESSION_EXPIRED, "Your session has expired.", "Please sign in again."
)
_BAD_INPUT = BackendError(
    ErrorKind.BAD_INPUT,
    "Some of the information provided is invalid.",
    "Please check your input and try again.",
)
_UNAVAILABLE = BackendError(
    ErrorKind.UNAVAILABLE,
    "Unable to connect to the server.",
    "Please check your internet connection.",
)
_UNKNOWN = BackendError(
    ErrorKind.UNKNOWN,
    "An unexpected error occurred.",
    "Please try again. If the problem persists, contact support.",
)

# Provider status names (gRPC for Firestore, Firebase platform codes for the
# other Admin SDK services) to the user-facing taxonomy.
BACKEND_ERROR_CODES: dict[str, BackendError] = {
    "NOT_FOUND": _NOT_FOUND,
    "ALREADY_EXISTS": _DUPLICATE,
    "ABORTED": _RELATED_DATA,
    "FAILED_PRECONDITION": _RELATED_DATA,
    "PERMISSION_DENIED": _FORBIDDEN,
    "UNAUTHENTICATED": _SESSION_EXPIRED,
    "INVALID_ARGUMENT": _BAD_INPUT,
    "OUT_OF_RANGE": _BAD_INPUT,
    "UNAVAILABLE": _UNAVAILABLE,
    "DEADLINE_EXCEEDED": _UNAVAILABLE,
}

# Fallback when a google.api_core error carries no gRPC status.
HTTP_ERROR_CODES: dict[int, BackendError] = {
    400: _BAD_INPUT,
    401: _SESSION_EXPIRED,
    403: _FORBIDDEN,
    404: _NOT_FOUND,
    409: _DUPLICATE,
    412: _RELATED_DATA,
    503: _UNAVAILABLE,
    504: _UNAVAILABLE,
}

_ERROR_CLASSES: dict[ErrorKind, type[AppError]] = {
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.FORBIDDEN: ForbiddenError,
    ErrorKind.SESSION_EXPIRED: SessionExpiredError,
    ErrorKind.BAD_INPUT: ValidationError,
    ErrorKind.UNAVAILABLE: ServiceUnavailableError,
}

_NETWORK_ERRORS = (
    ConnectionError,
    TimeoutError,
    google_auth_exceptions.TransportError,
)


def _classify(exc: BaseException) -> BackendError:
    if isinstance(exc, AppError):
        return BackendError(exc.kind, exc.message, exc.hint)
    if isinstance(exc, auth.EmailAlreadyExistsError):
        return BackendError(
            ErrorKind.CONFLICT,
            "This email is already registered.",
            "Try signing in instead.",
        )
    if isinstance(
        exc,
        (
            auth.ExpiredIdTokenError,
            auth.RevokedIdTokenError,
            auth.InvalidIdTokenError,
            auth.UserDisabledError,
        ),
    ):
        return _SESSION_EXPIRED
    if isinstance(exc, auth.UserNotFoundError):
        return BackendError(
            ErrorKind.NOT_FOUND,
            "No account was found for these credentials.",
            "Check your email address or create an account.",
        )
    if isinstance(exc, firebase_exceptions.FirebaseError):
        return BACKEND_ERROR_CODES.get(str(exc.code), _UNKNOWN)
    if isinstance(exc, google_exceptions.GoogleAPICallError):
        grpc_code = getattr(exc, "grpc_status_code", None)
        if grpc_code is not None and grpc_code.name in BACKEND_ERROR_CODES:
            return BACKEND_ERROR_CODES[grpc_code.name]
        return HTTP_ERROR_CODES.get(exc.code or 0, _UNKNOWN)
    if isinstance(exc, _NETWORK_ERRORS):
        return _UNAVAILABLE
    return _UNKNOWN


def error_kind(exc: BaseException) -> ErrorKind:
    """Return the taxonomy kind of any exception."""
    return _classify(exc).kind


def map_backend_error(exc: BaseException) -> AppError:
    """Translate a backend or transport exception into an AppError.

    AppError instances are returned unchanged. Everything else is folded into
    the taxonomy with a user-facing message and hint.
    """
    if isinstance(exc, AppError):
        return exc
    mapped = _classify(exc)
    if mapped.kind == ErrorKind.CONFLICT:
        return DuplicateResourceError(mapped.message, mapped.hint)
    if mapped.kind == ErrorKind.UNKNOWN:
        return AppError(mapped.message, 500, mapped.hint)
    error_class = _ERROR_CLASSES[mapped.kind]
    return error_class(mapped.message, hint=mapped.hint)


def is_duplicate_error(exc: BaseException) -> bool:
    """Return True when the exception is a uniqueness violation."""
    if isinstance(exc, DuplicateResourceError):
        return True
    if isinstance(exc, google_exceptions.AlreadyExists):
        return True
    return isinstance(exc, firebase_exceptions.AlreadyExistsError)


def is_error_kind(exc: BaseException, kind: ErrorKind) -> bool:
    """Check whether an exception falls into the given taxonomy kind."""
    return error_kind(exc) == kind


def format_error_message(error: BaseException) -> str:
    """Join message and hint into a single line suitable for a toast."""
    app_error = map_backend_error(error)
    if app_error.hint:
        return f"{app_error.message} {app_error.hint}"
    return app_error.message
