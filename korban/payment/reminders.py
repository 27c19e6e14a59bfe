"""Payment reminder emails for participants with unpaid months."""

from __future__ import annotations

import datetime
from typing import Any, TypedDict

from flask import current_app

from korban.constants import MONTH_LABELS, SACRIFICE_TYPE_LABELS
from korban.utils import EmailError, is_valid_email, send_email

from .services import PaymentService, participant_price

DUE_DAY = 15


class Reminder(TypedDict):
    participant: dict[str, Any]
    unpaidMonths: list[str]
    totalOwed: float
    nextDueDate: str


def next_due_date(month: str) -> str:
    """Payments fall due on the 15th of the month."""
    year, month_num = (int(part) for part in month.split("-"))
    return datetime.date(year, month_num, DUE_DAY).isoformat()


def build_reminders(
    participants: list[dict[str, Any]],
    payments: list[dict[str, Any]],
    monthly_amount: float,
    months: list[str] | None = None,
) -> list[Reminder]:
    """One reminder per participant who still has unpaid months."""
    by_participant: dict[str, list[dict[str, Any]]] = {}
    for payment in payments:
        by_participant.setdefault(payment.get("participantId", ""), []).append(payment)

    reminders: list[Reminder] = []
    for participant in participants:
        unpaid = PaymentService.unpaid_months(
            by_participant.get(participant["id"], []), months
        )
        if not unpaid:
            continue
        price = participant_price(participant, monthly_amount)
        reminders.append(
            {
                "participant": participant,
                "unpaidMonths": unpaid,
                "totalOwed": float(len(unpaid) * price),
                "nextDueDate": next_due_date(unpaid[0]),
            }
        )
    return reminders


def participants_without_email(
    participants: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    return [p for p in participants if not is_valid_email(p.get("email"))]


def send_reminders(reminders: list[Reminder]) -> dict[str, Any]:
    """Email each reminder; failures are logged and reported, not raised."""
    sent: list[str] = []
    failed: list[dict[str, str]] = []
    skipped: list[str] = []
    for reminder in reminders:
        participant = reminder["participant"]
        email = participant.get("email")
        if not is_valid_email(email):
            skipped.append(participant["id"])
            continue
        try:
            send_email(
                to=email,
                subject=f"Peringatan Pembayaran Korban - {participant.get('name')}",
                template="email/payment_reminder.html",
                participant=participant,
                months=[MONTH_LABELS.get(m, m) for m in reminder["unpaidMonths"]],
                total_owed=reminder["totalOwed"],
                next_due_date=reminder["nextDueDate"],
                sacrifice_type=SACRIFICE_TYPE_LABELS.get(
                    participant.get("sacrificeType") or "", ""
                ),
                admin_phone=current_app.config.get("ADMIN_CONTACT_PHONE"),
                admin_email=current_app.config.get("ADMIN_CONTACT_EMAIL"),
            )
        except EmailError as e:
            current_app.logger.error(
                f"Failed to send reminder to participant {participant['id']}: {e}"
            )
            failed.append({"participantId": participant["id"], "error": str(e)})
            continue
        sent.append(participant["id"])
    current_app.logger.info(
        f"Payment reminders: {len(sent)} sent, {len(failed)} failed, "
        f"{len(skipped)} without email"
    )
    return {"sent": sent, "failed": failed, "skipped": skipped}
