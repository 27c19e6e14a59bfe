"""Routes for the payment blueprint."""

from firebase_admin import firestore
from flask import Response, current_app, jsonify, request

from korban.auth.decorators import ensure_participant_access, login_required
from korban.errors import ValidationError
from korban.group.services import GroupService
from korban.participant.services import ParticipantService
from korban.utils import form_errors, is_valid_month

from . import bp
from .analysis import (
    analyze_payment_data,
    cleanup_duplicate_payments,
    generate_data_report,
)
from .export import payment_report_rows, rows_to_csv
from .forms import PaymentForm, ReminderForm
from .reminders import build_reminders, participants_without_email, send_reminders
from .services import PaymentService


def _required_month():
    month = request.args.get("month")
    if not is_valid_month(month):
        raise ValidationError("month is required in YYYY-MM format.")
    return month


@bp.route("/", methods=["POST"])
@login_required(admin_required=True)
def record_payment():
    """Record a payment, replacing any existing one for the same month."""
    form = PaymentForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    payment_id = PaymentService(firestore.client()).record_payment(
        {
            "participantId": form.participant_id.data,
            "month": form.month.data,
            "amount": form.amount.data,
            "isPaid": form.is_paid.data,
            "paidDate": form.paid_date.data,
            "paymentMethod": form.payment_method.data,
            "notes": form.notes.data,
        }
    )
    current_app.logger.info(
        f"Payment {payment_id} recorded for {form.participant_id.data} "
        f"({form.month.data})"
    )
    return jsonify({"status": "success", "id": payment_id}), 201


@bp.route("/<string:payment_id>/edit", methods=["POST"])
@login_required(admin_required=True)
def edit_payment(payment_id):
    """Edit a payment's amount, status, date and notes."""
    form = PaymentForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    PaymentService(firestore.client()).update_payment(
        payment_id,
        {
            "amount": float(form.amount.data),
            "isPaid": form.is_paid.data,
            "paidDate": form.paid_date.data,
            "paymentMethod": form.payment_method.data or "",
            "notes": form.notes.data or "",
        },
    )
    return jsonify({"status": "success"})


@bp.route("/<string:payment_id>/delete", methods=["POST"])
@login_required(admin_required=True)
def delete_payment(payment_id):
    """Delete a payment."""
    PaymentService(firestore.client()).delete_payment(payment_id)
    return jsonify({"status": "success"})


@bp.route("/participant/<string:participant_id>", methods=["GET"])
@login_required
def participant_payments(participant_id):
    """Payments and progress of one participant."""
    ensure_participant_access(participant_id)
    service = PaymentService(firestore.client())
    payments = service.payments_for_participant(participant_id)
    return jsonify(
        {
            "payments": payments,
            "progress": service.payment_progress(participant_id, payments),
            "unpaidMonths": service.unpaid_months(payments),
        }
    )


@bp.route("/month", methods=["GET"])
@login_required(admin_required=True)
def month_payments():
    """All payments recorded against a month."""
    month = _required_month()
    return jsonify(PaymentService(firestore.client()).payments_for_month(month))


@bp.route("/analysis", methods=["GET"])
@login_required(admin_required=True)
def analysis():
    """Duplicate, suspicious and orphaned payments."""
    db = firestore.client()
    result = analyze_payment_data(
        PaymentService(db).all_payments(),
        ParticipantService(db).list_participants(),
        current_app.config["MONTHLY_AMOUNT"],
    )
    if request.args.get("format") == "text":
        report = generate_data_report(result, current_app.config["MONTHLY_AMOUNT"])
        return Response(report, mimetype="text/plain")
    return jsonify(result)


@bp.route("/cleanup-duplicates", methods=["POST"])
@login_required(admin_required=True)
def cleanup_duplicates():
    """Delete all but the first payment of each duplicate set."""
    db = firestore.client()
    result = analyze_payment_data(
        PaymentService(db).all_payments(),
        ParticipantService(db).list_participants(),
        current_app.config["MONTHLY_AMOUNT"],
    )
    cleaned = cleanup_duplicate_payments(db, result["duplicates"])
    current_app.logger.info(f"Cleaned up {cleaned} duplicate payments")
    return jsonify({"status": "success", "cleaned": cleaned})


def _reminders_for(group_id):
    db = firestore.client()
    participants = ParticipantService(db).list_participants(group_id or None)
    payments = PaymentService(db).all_payments()
    reminders = build_reminders(
        participants, payments, current_app.config["MONTHLY_AMOUNT"]
    )
    return participants, reminders


@bp.route("/reminders", methods=["GET"])
@login_required(admin_required=True)
def preview_reminders():
    """Participants who would receive a reminder, and those who cannot."""
    participants, reminders = _reminders_for(request.args.get("group_id"))
    return jsonify(
        {
            "reminders": reminders,
            "withoutEmail": participants_without_email(participants),
        }
    )


@bp.route("/reminders", methods=["POST"])
@login_required(admin_required=True)
def send_payment_reminders():
    """Email every participant who still owes payments."""
    form = ReminderForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))
    _, reminders = _reminders_for(form.group_id.data)
    result = send_reminders(reminders)
    return jsonify({"status": "success", **result})


@bp.route("/export", methods=["GET"])
@login_required(admin_required=True)
def export_csv():
    """Download the month's payment report as CSV."""
    month = _required_month()
    group_id = request.args.get("group_id")
    db = firestore.client()
    rows = payment_report_rows(
        ParticipantService(db).list_participants(group_id or None),
        GroupService(db).list_groups(),
        PaymentService(db).payments_for_month(month),
        month,
        current_app.config["MONTHLY_AMOUNT"],
        group_id,
    )
    filename = f"laporan-bayaran-{month}.csv"
    return Response(
        rows_to_csv(rows),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
