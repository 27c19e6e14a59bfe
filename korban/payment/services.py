"""Service layer for payment records."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from korban.constants import (
    GROUPS,
    MONTH_LABELS,
    MONTHS,
    PARTICIPANTS,
    PAYMENTS,
    SACRIFICE_TYPE_PRICING,
)
from korban.errors import NotFoundError, ValidationError
from korban.subscriptions import Subscription
from korban.utils import is_valid_month, snapshot_to_dict, to_datetime

from .models import Payment, PaymentProgress, PaymentSummary

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def _as_timestamp(value: Any) -> Any:
    """Firestore stores datetimes, not bare dates."""
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return datetime.datetime(
            value.year, value.month, value.day, tzinfo=datetime.timezone.utc
        )
    return value


def participant_price(participant: dict[str, Any], default: float) -> float:
    """Monthly amount owed by a participant, by sacrifice type."""
    return SACRIFICE_TYPE_PRICING.get(participant.get("sacrificeType") or "", default)


class PaymentService:
    """Record and query monthly payments."""

    def __init__(self, db: Client) -> None:
        self.db = db

    def _find(self, participant_id: str, month: str) -> Any | None:
        query = (
            self.db.collection(PAYMENTS)
            .where(filter=firestore.FieldFilter("participantId", "==", participant_id))
            .where(filter=firestore.FieldFilter("month", "==", month))
            .limit(1)
        )
        docs = list(query.stream())
        return docs[0] if docs else None

    def record_payment(self, data: dict[str, Any]) -> str:
        """Record a payment, updating the existing one for the same month.

        A participant has at most one payment per month; recording a second
        one overwrites the first rather than duplicating it.
        """
        participant_id = data.get("participantId")
        month = data.get("month")
        if not participant_id:
            raise ValidationError("participantId is required.")
        if not is_valid_month(month):
            raise ValidationError("Month must be in YYYY-MM format.")
        amount = data.get("amount")
        if amount is None or float(amount) < 0:
            raise ValidationError("Amount must be zero or more.")

        payload = {
            "participantId": participant_id,
            "month": month,
            "amount": float(amount),
            "isPaid": bool(data.get("isPaid", True)),
            "paidDate": _as_timestamp(data.get("paidDate")),
        }
        for optional in ("paymentMethod", "notes"):
            if data.get(optional):
                payload[optional] = data[optional]

        existing = self._find(participant_id, month)
        if existing is not None:
            existing.reference.update(payload)
            return existing.id

        _, ref = self.db.collection(PAYMENTS).add(payload)
        return ref.id

    def update_payment(self, payment_id: str, updates: dict[str, Any]) -> None:
        ref = self.db.collection(PAYMENTS).document(payment_id)
        if not ref.get().exists:
            raise NotFoundError("Payment not found.")
        if "paidDate" in updates:
            updates = {**updates, "paidDate": _as_timestamp(updates["paidDate"])}
        ref.update(updates)

    def delete_payment(self, payment_id: str) -> None:
        ref = self.db.collection(PAYMENTS).document(payment_id)
        if not ref.get().exists:
            raise NotFoundError("Payment not found.")
        ref.delete()

    def payments_for_participant(self, participant_id: str) -> list[Payment]:
        """Payments of one participant ordered by month."""
        docs = (
            self.db.collection(PAYMENTS)
            .where(filter=firestore.FieldFilter("participantId", "==", participant_id))
            .stream()
        )
        payments = [snapshot_to_dict(doc) for doc in docs]
        # Sorted here to avoid needing a composite index
        payments.sort(key=lambda p: p.get("month", ""))
        return payments  # type: ignore[return-value]

    def payments_for_month(self, month: str) -> list[Payment]:
        docs = (
            self.db.collection(PAYMENTS)
            .where(filter=firestore.FieldFilter("month", "==", month))
            .stream()
        )
        return [snapshot_to_dict(doc) for doc in docs]  # type: ignore[misc]

    def all_payments(self) -> list[Payment]:
        docs = self.db.collection(PAYMENTS).stream()
        return [snapshot_to_dict(doc) for doc in docs]  # type: ignore[misc]

    def subscribe(self, handler: Any, month: str) -> Subscription:
        """Live view of one month's payments."""
        query = self.db.collection(PAYMENTS).where(
            filter=firestore.FieldFilter("month", "==", month)
        )
        return Subscription(query, handler)

    def payment_progress(
        self, participant_id: str, payments: list[Payment] | None = None
    ) -> PaymentProgress:
        """Fill the collection months in order, one per paid payment.

        The bar is sequential: three paid payments fill the first three
        months regardless of which months they were recorded against.
        """
        if payments is None:
            payments = self.payments_for_participant(participant_id)
        paid = [p for p in payments if p.get("isPaid")]
        return {
            "paidCount": len(paid),
            "totalMonths": len(MONTHS),
            "paidAmount": float(sum(p.get("amount", 0) for p in paid)),
            "months": [
                {
                    "month": month,
                    "label": MONTH_LABELS.get(month, month),
                    "filled": index < len(paid),
                }
                for index, month in enumerate(MONTHS)
            ],
        }

    @staticmethod
    def unpaid_months(
        payments: list[Payment], months: list[str] | None = None
    ) -> list[str]:
        """Collection months with no paid payment."""
        paid_months = {p.get("month") for p in payments if p.get("isPaid")}
        return [m for m in (months or MONTHS) if m not in paid_months]

    def group_summaries(
        self, month: str, monthly_amount: float = 100
    ) -> list[PaymentSummary]:
        """Per-group completion for ``month``."""
        groups = {
            doc.id: doc.to_dict() or {} for doc in self.db.collection(GROUPS).stream()
        }
        participants = [
            snapshot_to_dict(doc) for doc in self.db.collection(PARTICIPANTS).stream()
        ]
        paid_by_participant = {
            p["participantId"]: p
            for p in self.payments_for_month(month)
            if p.get("isPaid")
        }

        summaries: list[PaymentSummary] = []
        for group_id, group in groups.items():
            members = [p for p in participants if p.get("groupId") == group_id]
            paid = [
                paid_by_participant[m["id"]]
                for m in members
                if m["id"] in paid_by_participant
            ]
            expected = sum(participant_price(m, monthly_amount) for m in members)
            summaries.append(
                {
                    "groupId": group_id,
                    "groupName": group.get("name", ""),
                    "month": month,
                    "totalParticipants": len(members),
                    "totalPaid": len(paid),
                    "totalAmount": float(sum(p.get("amount", 0) for p in paid)),
                    "expectedAmount": float(expected),
                    "completionPercentage": round(len(paid) / len(members) * 100, 1)
                    if members
                    else 0.0,
                }
            )
        return summaries


def paid_date_display(payment: Payment) -> str:
    """Paid date as YYYY-MM-DD, or '-' when unknown."""
    moment = to_datetime(payment.get("paidDate"))
    return moment.date().isoformat() if moment else "-"
