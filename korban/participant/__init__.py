"""The participant blueprint."""

from flask import Blueprint

bp = Blueprint("participant", __name__, url_prefix="/participants")

from . import routes  # noqa: E402
from .services import ParticipantService  # noqa: E402

__all__ = ["routes", "ParticipantService"]
