"""Routes for the change request blueprint."""

from firebase_admin import firestore
from flask import jsonify, request, session

from korban.auth.decorators import ensure_participant_access, login_required
from korban.errors import ValidationError
from korban.utils import form_errors

from . import bp
from .forms import ChangeRequestForm, ReviewForm
from .services import ChangeRequestService


@bp.route("/", methods=["POST"])
@login_required
def create_request():
    """Request changes to a participant's details."""
    form = ChangeRequestForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    ensure_participant_access(form.participant_id.data)
    request_id = ChangeRequestService(firestore.client()).create_request(
        form.participant_id.data,
        session["user_id"],
        {
            "name": form.name.data,
            "phone": form.phone.data,
            "email": form.email.data,
            "sacrificeType": form.sacrifice_type.data,
        },
        form.notes.data or None,
    )
    return jsonify({"status": "success", "id": request_id}), 201


@bp.route("/pending", methods=["GET"])
@login_required(admin_required=True)
def pending_requests():
    """Requests waiting for review."""
    return jsonify(ChangeRequestService(firestore.client()).list_pending())


@bp.route("/participant/<string:participant_id>", methods=["GET"])
@login_required
def participant_requests(participant_id):
    """A participant's requests, newest first."""
    ensure_participant_access(participant_id)
    service = ChangeRequestService(firestore.client())
    return jsonify(service.list_for_participant(participant_id))


@bp.route("/<string:request_id>/approve", methods=["POST"])
@login_required(admin_required=True)
def approve_request(request_id):
    """Approve a request and apply its changes."""
    ChangeRequestService(firestore.client()).approve(request_id, session["user_id"])
    return jsonify({"status": "success"})


@bp.route("/<string:request_id>/reject", methods=["POST"])
@login_required(admin_required=True)
def reject_request(request_id):
    """Reject a request."""
    form = ReviewForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    ChangeRequestService(firestore.client()).reject(
        request_id, session["user_id"], form.notes.data or None
    )
    return jsonify({"status": "success"})


@bp.route("/audit-logs", methods=["GET"])
@login_required
def audit_logs():
    """Audit trail, for one participant (``participant_id``) or everyone."""
    participant_id = request.args.get("participant_id")
    if participant_id:
        ensure_participant_access(participant_id)
    elif not session.get("is_admin"):
        raise ValidationError("participant_id is required.")
    service = ChangeRequestService(firestore.client())
    return jsonify(service.audit_logs(participant_id))
