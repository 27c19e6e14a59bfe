"""Routes for the diagnostics blueprint."""

from firebase_admin import firestore
from flask import current_app, jsonify

from korban.auth.decorators import login_required

from . import bp
from .services import IntegrityScanner


def _scanner():
    return IntegrityScanner(firestore.client(), current_app.config["GROUP_CAPACITY"])


@bp.route("/scan", methods=["GET"])
@login_required(admin_required=True)
def scan():
    """Orphaned and duplicate participants, and the headcount discrepancy."""
    return jsonify(_scanner().scan())


@bp.route("/cleanup-orphans", methods=["POST"])
@login_required(admin_required=True)
def cleanup_orphans():
    """Delete participants whose group no longer exists."""
    deleted = _scanner().delete_orphaned()
    return jsonify({"status": "success", "deleted": deleted})


@bp.route("/connection", methods=["GET"])
@login_required(admin_required=True)
def connection():
    """Check that Firestore can be read."""
    result = _scanner().check_connection()
    return jsonify(result), 200 if result["success"] else 503
