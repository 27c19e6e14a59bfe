"""Routes for the receipt blueprint."""

from firebase_admin import firestore, storage
from flask import current_app, jsonify, request, session

from korban.auth.decorators import ensure_participant_access, login_required
from korban.errors import ValidationError
from korban.utils import form_errors

from . import bp
from .forms import ApproveReceiptForm, ReceiptUploadForm, RejectReceiptForm
from .services import ReceiptService
from .storage import ReceiptStorage
from .validation import validate_receipt_file


def _receipt_storage():
    return ReceiptStorage(
        storage.bucket(),
        max_width=current_app.config["RECEIPT_MAX_WIDTH"],
        quality=current_app.config["RECEIPT_QUALITY"],
    )


def _selected_ids():
    """Receipt ids from a JSON list or repeated form fields."""
    payload = request.get_json(silent=True)
    if payload is not None:
        if not isinstance(payload, dict):
            raise ValidationError("Expected a JSON object with receipt_ids.")
        ids = payload.get("receipt_ids") or []
    else:
        ids = request.form.getlist("receipt_ids")
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise ValidationError("receipt_ids must be a list of ids.")
    return ids


@bp.route("/upload", methods=["POST"])
@login_required
def upload_receipt():
    """Upload a receipt file and submit it for review."""
    form = ReceiptUploadForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    participant_id = form.participant_id.data
    ensure_participant_access(participant_id)

    file_storage = form.receipt.data
    data = file_storage.read()
    content_type = file_storage.mimetype
    # Cheap check on the declared type and size before touching storage
    result = validate_receipt_file(content_type, len(data))
    if not result:
        raise ValidationError(result.error)

    url = _receipt_storage().upload(
        participant_id, form.month.data, file_storage.filename, content_type, data
    )
    receipt_id = ReceiptService(firestore.client()).submit_for_approval(
        {
            "participantId": participant_id,
            "month": form.month.data,
            "amount": form.amount.data,
            "receiptImageUrl": url,
            "notes": form.notes.data or None,
        },
        content_type,
    )
    return jsonify({"status": "success", "id": receipt_id, "url": url}), 201


@bp.route("/", methods=["GET"])
@login_required(admin_required=True)
def list_receipts():
    """List receipts, optionally filtered by ``status`` and ``month``."""
    service = ReceiptService(firestore.client())
    return jsonify(
        service.list_receipts(request.args.get("status"), request.args.get("month"))
    )


@bp.route("/participant/<string:participant_id>", methods=["GET"])
@login_required
def participant_receipts(participant_id):
    """A participant's own receipts with their review status."""
    ensure_participant_access(participant_id)
    service = ReceiptService(firestore.client())
    return jsonify(service.list_for_participant(participant_id))


@bp.route("/<string:receipt_id>", methods=["GET"])
@login_required
def view_receipt(receipt_id):
    """Return a single receipt."""
    receipt = ReceiptService(firestore.client()).get_receipt(receipt_id)
    ensure_participant_access(receipt.get("participantId"))
    return jsonify(receipt)


@bp.route("/<string:receipt_id>/approve", methods=["POST"])
@login_required(admin_required=True)
def approve_receipt(receipt_id):
    """Approve a pending receipt, optionally recording the payment."""
    form = ApproveReceiptForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    payment_id = ReceiptService(firestore.client()).approve(
        receipt_id,
        session["user_id"],
        create_payment=form.create_payment.data,
        notes=form.notes.data or None,
    )
    return jsonify({"status": "success", "paymentId": payment_id})


@bp.route("/<string:receipt_id>/reject", methods=["POST"])
@login_required(admin_required=True)
def reject_receipt(receipt_id):
    """Reject a pending receipt."""
    form = RejectReceiptForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    ReceiptService(firestore.client()).reject(
        receipt_id, session["user_id"], form.reason.data
    )
    return jsonify({"status": "success"})


@bp.route("/bulk-approve", methods=["POST"])
@login_required(admin_required=True)
def bulk_approve():
    """Approve the selected receipts in one atomic write."""
    count = ReceiptService(firestore.client()).bulk_approve(
        _selected_ids(), session["user_id"]
    )
    return jsonify({"status": "success", "updated": count})


@bp.route("/bulk-reject", methods=["POST"])
@login_required(admin_required=True)
def bulk_reject():
    """Reject the selected receipts with one shared reason."""
    ids = _selected_ids()
    form = RejectReceiptForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    count = ReceiptService(firestore.client()).bulk_reject(
        ids, session["user_id"], form.reason.data
    )
    return jsonify({"status": "success", "updated": count})
