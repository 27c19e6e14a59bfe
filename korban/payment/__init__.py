"""The payment blueprint."""

from flask import Blueprint

bp = Blueprint("payment", __name__, url_prefix="/payments")

from . import routes  # noqa: E402
from .services import PaymentService  # noqa: E402

__all__ = ["routes", "PaymentService"]
