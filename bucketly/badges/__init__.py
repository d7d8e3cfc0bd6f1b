"""The badges blueprint."""

from flask import Blueprint

bp = Blueprint("badges", __name__, url_prefix="/badges")

from . import routes  # noqa: E402

__all__ = ["routes"]
