"""The storage housekeeping blueprint."""

from flask import Blueprint

bp = Blueprint("storage", __name__, url_prefix="/storage")

from . import routes  # noqa: E402
from .services import StorageService  # noqa: E402

__all__ = ["routes", "StorageService"]
