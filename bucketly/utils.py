"""Utility functions for the application."""

from __future__ import annotations

import datetime
import smtplib
from typing import TYPE_CHECKING, Any

from flask import current_app, render_template
from flask_mail import Message

from .extensions import mail

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot

    from .core.types import APIResponse

SMTP_AUTH_ERROR_CODE = 534


class EmailError(Exception):
    """Base class for email errors."""

    pass


def send_email(to, subject, template, **kwargs):
    """Send an email to a recipient.

    Raises:
        EmailError: If sending the email fails.
    """
    msg = Message(
        subject,
        recipients=[to],
        html=render_template(template, **kwargs),
        sender=current_app.config["MAIL_DEFAULT_SENDER"],
    )
    try:
        mail.send(msg)
    except smtplib.SMTPAuthenticationError as e:
        if e.smtp_code == SMTP_AUTH_ERROR_CODE:
            raise EmailError(
                "Authentication failed. The mail provider requires an App Password. "
                "Please verify your MAIL_USERNAME and MAIL_PASSWORD settings."
            ) from e
        raise EmailError(f"SMTP Authentication failed: {e}") from e
    except Exception as e:
        raise EmailError(f"Failed to send email: {e}") from e


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def doc_to_dict(doc: DocumentSnapshot) -> dict[str, Any]:
    """Flatten a snapshot into a dict that carries its id."""
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


def sort_newest_first(
    rows: list[dict[str, Any]], field: str = "created_at"
) -> list[dict[str, Any]]:
    """Sort dicts by a timestamp field, newest first, missing values last."""
    epoch = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)

    def key(row: dict[str, Any]) -> datetime.datetime:
        value = row.get(field)
        if not isinstance(value, datetime.datetime):
            return epoch
        return as_utc(value)

    return sorted(rows, key=key, reverse=True)


def paginate(rows: list[Any], page: int, page_size: int) -> dict[str, Any]:
    """Slice a zero-indexed page out of rows.

    Returns a dict with ``data``, ``count`` (total rows) and ``has_more``.
    """
    page = max(page, 0)
    start = page * page_size
    end = start + page_size
    return {
        "data": rows[start:end],
        "count": len(rows),
        "has_more": end < len(rows),
    }


def chunked(values: list[Any], size: int) -> list[list[Any]]:
    """Split values into lists of at most size elements."""
    return [values[i : i + size] for i in range(0, len(values), size)]


def api_response(data: Any = None, message: str = "OK") -> APIResponse:
    """Wrap a successful payload in the standard response envelope."""
    return {"success": True, "message": message, "data": data}
