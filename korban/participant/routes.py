"""Routes for the participant blueprint."""

from firebase_admin import firestore
from flask import jsonify, request

from korban.auth.decorators import ensure_participant_access, login_required
from korban.errors import ValidationError
from korban.payment.services import PaymentService
from korban.utils import form_errors

from . import bp
from .forms import ParticipantForm
from .services import ParticipantService


def _form_payload(form):
    return {
        "name": form.name.data,
        "groupId": form.group_id.data,
        "phone": form.phone.data or None,
        "email": form.email.data or None,
        "userId": form.user_id.data or None,
        "sacrificeType": form.sacrifice_type.data,
    }


@bp.route("/", methods=["GET"])
@login_required(admin_required=True)
def list_participants():
    """List participants, optionally filtered by ``group_id``."""
    service = ParticipantService(firestore.client())
    return jsonify(service.list_participants(request.args.get("group_id")))


@bp.route("/", methods=["POST"])
@login_required(admin_required=True)
def create_participant():
    """Create a participant."""
    form = ParticipantForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    participant_id = ParticipantService(firestore.client()).create_participant(
        _form_payload(form)
    )
    return jsonify({"status": "success", "id": participant_id}), 201


@bp.route("/<string:participant_id>", methods=["GET"])
@login_required
def view_participant(participant_id):
    """Return a participant with their payment progress."""
    ensure_participant_access(participant_id)
    db = firestore.client()
    participant = ParticipantService(db).get_participant(participant_id)
    payments = PaymentService(db)
    participant["progress"] = payments.payment_progress(participant_id)
    return jsonify(participant)


@bp.route("/<string:participant_id>/edit", methods=["POST"])
@login_required(admin_required=True)
def edit_participant(participant_id):
    """Edit a participant directly (admin only)."""
    form = ParticipantForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    updates = {k: v for k, v in _form_payload(form).items() if v is not None}
    ParticipantService(firestore.client()).update_participant(participant_id, updates)
    return jsonify({"status": "success"})


@bp.route("/<string:participant_id>/delete", methods=["POST"])
@login_required(admin_required=True)
def delete_participant(participant_id):
    """Delete a participant."""
    ParticipantService(firestore.client()).delete_participant(participant_id)
    return jsonify({"status": "success"})
