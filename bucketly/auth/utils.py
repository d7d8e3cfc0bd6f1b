"""Helpers for identifying administrators."""

from flask import current_app


def is_admin_email(email):
    """Whether an email belongs to one of the configured administrators."""
    if not email:
        return False
    return email.strip().lower() in current_app.config.get("ADMIN_EMAILS", [])
