"""The receipt blueprint."""

from flask import Blueprint

bp = Blueprint("receipt", __name__, url_prefix="/receipts")

from . import routes  # noqa: E402
from .services import ReceiptService  # noqa: E402
from .storage import ReceiptStorage  # noqa: E402

__all__ = ["routes", "ReceiptService", "ReceiptStorage"]
