"""The memories blueprint."""

from flask import Blueprint

bp = Blueprint("memories", __name__, url_prefix="/memories")

from . import routes  # noqa: E402

__all__ = ["routes"]
