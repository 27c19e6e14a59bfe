"""Routes for the group blueprint."""

from firebase_admin import firestore
from flask import current_app, jsonify, request

from korban.auth.decorators import login_required
from korban.errors import ValidationError
from korban.payment.services import PaymentService
from korban.utils import form_errors

from . import bp
from .forms import GroupForm
from .services import GroupService


@bp.route("/", methods=["GET"])
@login_required
def list_groups():
    """List all groups."""
    return jsonify(GroupService(firestore.client()).list_groups())


@bp.route("/", methods=["POST"])
@login_required(admin_required=True)
def create_group():
    """Create a new group."""
    form = GroupForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    group_id = GroupService(firestore.client()).create_group(
        form.name.data, form.description.data or None
    )
    return jsonify({"status": "success", "id": group_id}), 201


@bp.route("/<string:group_id>", methods=["GET"])
@login_required
def view_group(group_id):
    """Return a single group."""
    return jsonify(GroupService(firestore.client()).get_group(group_id))


@bp.route("/<string:group_id>/edit", methods=["POST"])
@login_required(admin_required=True)
def edit_group(group_id):
    """Edit a group's name and description."""
    form = GroupForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    GroupService(firestore.client()).update_group(
        group_id, {"name": form.name.data, "description": form.description.data or ""}
    )
    return jsonify({"status": "success"})


@bp.route("/<string:group_id>/delete", methods=["POST"])
@login_required(admin_required=True)
def delete_group(group_id):
    """Delete a group."""
    GroupService(firestore.client()).delete_group(group_id)
    return jsonify({"status": "success"})


@bp.route("/summary", methods=["GET"])
@login_required(admin_required=True)
def payment_summary():
    """Per-group payment completion for a month."""
    month = request.args.get("month")
    if not month:
        raise ValidationError("month is required.")
    service = PaymentService(firestore.client())
    return jsonify(
        service.group_summaries(month, current_app.config["MONTHLY_AMOUNT"])
    )
