"""Blueprint that renders every failure as a JSON toast payload."""

from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError
from google.api_core.exceptions import GoogleAPICallError
from firebase_admin.exceptions import FirebaseError

from .errors import (
    AppError,
    ErrorKind,
    NotFoundError,
    SessionExpiredError,
    format_error_message,
    is_error_kind,
    map_backend_error,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


def _toast(error):
    return jsonify({"status": "error", "error": error.to_dict()}), error.status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles application errors raised by services and routes."""
    if error.status_code >= 500:
        current_app.logger.error(f"Application Error: {error.message}")
    else:
        current_app.logger.warning(
            f"{type(error).__name__} ({error.kind.value}): {error.message}"
        )
    return _toast(error)


@error_handlers_bp.app_errorhandler(GoogleAPICallError)
@error_handlers_bp.app_errorhandler(FirebaseError)
def handle_backend_error(e):
    """Handles errors surfaced by Firestore, Storage or Firebase Auth."""
    if is_error_kind(e, ErrorKind.NOT_FOUND) or is_error_kind(e, ErrorKind.CONFLICT):
        current_app.logger.warning(f"Backend Error: {format_error_message(e)}")
    else:
        current_app.logger.error(f"Backend Error: {format_error_message(e)} ({e})")
    return _toast(map_backend_error(e))


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """Handles CSRF errors, which usually indicate a session timeout."""
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return _toast(SessionExpiredError("Your session may have expired."))


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _toast(NotFoundError("Page Not Found"))


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _toast(AppError("An unexpected error occurred.", 500))
