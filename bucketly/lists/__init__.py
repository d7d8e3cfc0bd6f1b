"""The lists blueprint."""

from flask import Blueprint

bp = Blueprint("lists", __name__, url_prefix="/lists")

from . import routes  # noqa: E402

__all__ = ["routes"]
