"""The change request blueprint."""

from flask import Blueprint

bp = Blueprint("change_request", __name__, url_prefix="/change-requests")

from . import routes  # noqa: E402
from .services import ChangeRequestService  # noqa: E402

__all__ = ["routes", "ChangeRequestService"]
