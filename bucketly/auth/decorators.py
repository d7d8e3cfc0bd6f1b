"""Decorators for the auth blueprint."""

from functools import wraps

from flask import jsonify, session

from bucketly.errors import ForbiddenError, SessionExpiredError


def _reject(error):
    return jsonify({"status": "error", "error": error.to_dict()}), error.status_code


def login_required(f=None, admin_required=False):
    """Reject the request with a JSON error if the user is not logged in.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(admin_required=True)
    def admin_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if "user_id" not in session:
                return _reject(SessionExpiredError("Please log in to continue."))
            if admin_required and not session.get("is_admin"):
                return _reject(ForbiddenError("You are not authorized to do that."))
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
