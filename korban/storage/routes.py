"""Routes for the storage blueprint."""

import io

from firebase_admin import firestore, storage
from flask import Response, current_app, jsonify, request, send_file

from korban.auth.decorators import login_required
from korban.errors import ValidationError
from korban.utils import format_bytes, is_valid_month

from . import bp
from .services import StorageService, export_stats, storage_alerts


def _service():
    return StorageService(
        storage.bucket(),
        firestore.client(),
        batch_size=current_app.config["BACKUP_BATCH_SIZE"],
    )


def _month(month):
    if not is_valid_month(month):
        raise ValidationError("Month must be in YYYY-MM format.")
    return month


@bp.route("/usage", methods=["GET"])
@login_required(admin_required=True)
def usage():
    """Storage usage with quota alerts."""
    quota = current_app.config["STORAGE_QUOTA_BYTES"]
    result = _service().usage()
    return jsonify(
        {
            **result,
            "total_size": format_bytes(result["total_bytes"]),
            "quota_bytes": quota,
            "percent_used": round(result["total_bytes"] / quota * 100, 2),
            "alerts": storage_alerts(result, quota),
        }
    )


@bp.route("/usage/export", methods=["GET"])
@login_required(admin_required=True)
def export_usage():
    """Download usage statistics as JSON."""
    stats = export_stats(_service().usage())
    return Response(
        stats,
        mimetype="application/json",
        headers={"Content-Disposition": "attachment; filename=storage-stats.json"},
    )


@bp.route("/months/<string:month>/files", methods=["GET"])
@login_required(admin_required=True)
def month_files(month):
    """Receipt files uploaded during a month."""
    return jsonify(_service().files_for_month(_month(month)))


@bp.route("/months/<string:month>/download", methods=["GET"])
@login_required(admin_required=True)
def download_month(month):
    """Download a month's receipt files as a ZIP archive."""
    data = _service().download_month(_month(month))
    return send_file(
        io.BytesIO(data),
        mimetype="application/zip",
        as_attachment=True,
        download_name=f"receipts-{month}.zip",
    )


@bp.route("/cleanup-rejected", methods=["POST"])
@login_required(admin_required=True)
def cleanup_rejected():
    """Delete the files of receipts rejected long ago."""
    payload = request.get_json(silent=True) or {}
    max_age_days = payload.get(
        "max_age_days", current_app.config["REJECTED_RECEIPT_MAX_AGE_DAYS"]
    )
    if not isinstance(max_age_days, int) or max_age_days < 0:
        raise ValidationError("max_age_days must be a non-negative integer.")
    deleted = _service().cleanup_rejected(max_age_days)
    current_app.logger.info(f"Rejected receipt cleanup deleted {deleted} files")
    return jsonify({"status": "success", "deleted": deleted})


@bp.route("/backup", methods=["POST"])
@login_required(admin_required=True)
def full_backup():
    """Download every stored file as one ZIP archive."""

    def log_progress(progress, message):
        current_app.logger.debug(f"Backup {progress:.0f}%: {message}")

    result = _service().full_backup(on_progress=log_progress)
    if not result["success"]:
        return jsonify({"status": "error", "message": result["error"]}), 404
    return send_file(
        io.BytesIO(result["data"]),
        mimetype="application/zip",
        as_attachment=True,
        download_name="firebase-storage-backup.zip",
    )
