"""Service layer for receipt records and their review."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from flask import current_app

from korban.constants import (
    FIRESTORE_BATCH_LIMIT,
    RECEIPT_UPLOADS,
    REVIEW_STATUSES,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
)
from korban.errors import InvalidTransitionError, NotFoundError, ValidationError
from korban.payment.services import PaymentService
from korban.subscriptions import Subscription
from korban.utils import (
    is_valid_month,
    local_today,
    snapshot_to_dict,
    strip_none,
    to_datetime,
)

from .models import ReceiptUpload
from .storage import file_type

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

SUBMITTED_FIELDS = ("participantId", "month", "amount", "receiptImageUrl", "notes")
_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


def _newest_first(docs: Any) -> list[Any]:
    receipts = [snapshot_to_dict(doc) for doc in docs]
    # uploadDate is missing while the server timestamp is still pending
    return sorted(
        receipts,
        key=lambda r: to_datetime(r.get("uploadDate")) or _EPOCH,
        reverse=True,
    )


class ReceiptService:
    """Submit, query and review receipt uploads.

    A receipt starts ``pending`` and is decided exactly once, to either
    ``approved`` or ``rejected``.
    """

    def __init__(self, db: Client) -> None:
        self.db = db

    def _ref(self, receipt_id: str) -> Any:
        return self.db.collection(RECEIPT_UPLOADS).document(receipt_id)

    def submit_for_approval(
        self, data: dict[str, Any], content_type: str | None = None
    ) -> str:
        """Create a pending receipt record and return its id.

        Status and upload date are always set here, whatever the caller sent.
        """
        if not data.get("participantId"):
            raise ValidationError("participantId is required.")
        if not is_valid_month(data.get("month")):
            raise ValidationError("Month must be in YYYY-MM format.")
        if not data.get("receiptImageUrl"):
            raise ValidationError("receiptImageUrl is required.")

        record = {key: data.get(key) for key in SUBMITTED_FIELDS}
        if record["amount"] is not None:
            record["amount"] = float(record["amount"])
        record.update(
            {
                "status": STATUS_PENDING,
                "uploadDate": firestore.SERVER_TIMESTAMP,
                "fileType": file_type(data["receiptImageUrl"], content_type),
            }
        )
        _, ref = self.db.collection(RECEIPT_UPLOADS).add(strip_none(record))
        current_app.logger.info(
            f"Receipt {ref.id} submitted by {data['participantId']} for {data['month']}"
        )
        return ref.id

    def get_receipt(self, receipt_id: str) -> ReceiptUpload:
        doc = self._ref(receipt_id).get()
        if not doc.exists:
            raise NotFoundError("Receipt not found.")
        return snapshot_to_dict(doc)  # type: ignore[return-value]

    def _query(self, status: str | None = None, month: str | None = None) -> Any:
        if status is not None and status not in REVIEW_STATUSES:
            raise ValidationError(f"Unknown status: {status}")
        query: Any = self.db.collection(RECEIPT_UPLOADS)
        if status:
            query = query.where(filter=firestore.FieldFilter("status", "==", status))
        if month:
            query = query.where(filter=firestore.FieldFilter("month", "==", month))
        return query

    def list_receipts(
        self, status: str | None = None, month: str | None = None
    ) -> list[ReceiptUpload]:
        """Receipts, newest first, optionally filtered by status and month."""
        docs = self._query(status, month).stream()
        return _newest_first(docs)

    def list_for_participant(self, participant_id: str) -> list[ReceiptUpload]:
        docs = (
            self.db.collection(RECEIPT_UPLOADS)
            .where(filter=firestore.FieldFilter("participantId", "==", participant_id))
            .stream()
        )
        return _newest_first(docs)

    def subscribe(self, handler: Any, status: str | None = None) -> Subscription:
        """Live view of receipts; call ``cancel()`` on the result to stop."""
        return Subscription(self._query(status), handler)

    def _pending(self, receipt_id: str) -> ReceiptUpload:
        receipt = self.get_receipt(receipt_id)
        if receipt.get("status") != STATUS_PENDING:
            raise InvalidTransitionError(
                f"Receipt {receipt_id} has already been {receipt.get('status')}."
            )
        return receipt

    def approve(
        self,
        receipt_id: str,
        approver_id: str,
        create_payment: bool = False,
        notes: str | None = None,
    ) -> str | None:
        """Approve a pending receipt.

        When ``create_payment`` is set the matching payment is recorded as
        paid today with the receipt's amount. Returns the payment id, if any.
        """
        if not approver_id:
            raise ValidationError("An approver is required.")
        receipt = self._pending(receipt_id)
        self._ref(receipt_id).update(
            {
                "status": STATUS_APPROVED,
                "approvedBy": approver_id,
                "approvedDate": firestore.SERVER_TIMESTAMP,
            }
        )
        current_app.logger.info(f"Receipt {receipt_id} approved by {approver_id}")

        if not create_payment:
            return None
        payment_id = PaymentService(self.db).record_payment(
            {
                "participantId": receipt["participantId"],
                "month": receipt["month"],
                "amount": receipt.get("amount", 0),
                "isPaid": True,
                "paidDate": local_today(current_app.config["TIMEZONE"]),
                "notes": notes or f"Approved via receipt upload - {receipt_id}",
            }
        )
        current_app.logger.info(
            f"Payment {payment_id} created from receipt {receipt_id}"
        )
        return payment_id

    def reject(self, receipt_id: str, approver_id: str, reason: str) -> None:
        """Reject a pending receipt with a reason shown to the participant."""
        if not approver_id:
            raise ValidationError("An approver is required.")
        if not (reason or "").strip():
            raise ValidationError("A rejection reason is required.")
        self._pending(receipt_id)
        self._ref(receipt_id).update(
            {
                "status": STATUS_REJECTED,
                "rejectionReason": reason.strip(),
                "approvedBy": approver_id,
                "approvedDate": firestore.SERVER_TIMESTAMP,
            }
        )
        current_app.logger.info(f"Receipt {receipt_id} rejected by {approver_id}")

    def _commit_bulk(self, receipt_ids: list[str], updates: dict[str, Any]) -> int:
        """Apply ``updates`` to every receipt in a single atomic batch."""
        if not receipt_ids:
            raise ValidationError("No receipts selected.")
        if len(receipt_ids) > FIRESTORE_BATCH_LIMIT:
            raise ValidationError(
                f"Select at most {FIRESTORE_BATCH_LIMIT} receipts at a time."
            )
        batch = self.db.batch()
        for receipt_id in receipt_ids:
            batch.update(self._ref(receipt_id), updates)
        batch.commit()
        return len(receipt_ids)

    def bulk_approve(self, receipt_ids: list[str], approver_id: str) -> int:
        """Approve all the given receipts, or none of them."""
        if not approver_id:
            raise ValidationError("An approver is required.")
        count = self._commit_bulk(
            receipt_ids,
            {
                "status": STATUS_APPROVED,
                "approvedBy": approver_id,
                "approvedDate": firestore.SERVER_TIMESTAMP,
            },
        )
        current_app.logger.info(f"{count} receipts approved by {approver_id}")
        return count

    def bulk_reject(self, receipt_ids: list[str], approver_id: str, reason: str) -> int:
        """Reject all the given receipts with one shared reason, or none of them."""
        if not approver_id:
            raise ValidationError("An approver is required.")
        if not (reason or "").strip():
            raise ValidationError("A rejection reason is required.")
        count = self._commit_bulk(
            receipt_ids,
            {
                "status": STATUS_REJECTED,
                "rejectionReason": reason.strip(),
                "approvedBy": approver_id,
                "approvedDate": firestore.SERVER_TIMESTAMP,
            },
        )
        current_app.logger.info(f"{count} receipts rejected by {approver_id}")
        return count
