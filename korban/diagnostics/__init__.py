"""The diagnostics blueprint."""

from flask import Blueprint

bp = Blueprint("diagnostics", __name__, url_prefix="/diagnostics")

from . import routes  # noqa: E402
from .services import IntegrityScanner  # noqa: E402

__all__ = ["routes", "IntegrityScanner"]
