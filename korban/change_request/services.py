"""Service layer for participant change requests and the audit trail."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from flask import current_app

from korban.constants import (
    AUDIT_LOGS,
    CHANGE_REQUESTS,
    PARTICIPANTS,
    SACRIFICE_TYPES,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
)
from korban.errors import InvalidTransitionError, NotFoundError, ValidationError
from korban.subscriptions import Subscription
from korban.utils import snapshot_to_dict, strip_none, to_datetime, utcnow

from .models import AuditLog, ChangeRequest

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

CHANGEABLE_FIELDS = ("name", "phone", "email", "sacrificeType")

ACTION_REQUESTED = "detail_change_requested"
ACTION_APPROVED = "detail_change_approved"
ACTION_REJECTED = "detail_change_rejected"

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


def clean_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """Keep only non-empty values of the fields a participant may change."""
    cleaned = {
        field: value.strip() if isinstance(value, str) else value
        for field, value in changes.items()
        if field in CHANGEABLE_FIELDS and value not in (None, "")
    }
    if "sacrificeType" in cleaned and cleaned["sacrificeType"] not in SACRIFICE_TYPES:
        raise ValidationError(f"Unknown sacrifice type: {cleaned['sacrificeType']}")
    return cleaned


class ChangeRequestService:
    """Participants request changes; admins approve or reject them."""

    def __init__(self, db: Client) -> None:
        self.db = db

    def _audit_entry(
        self, participant_id: str, action: str, performed_by: str, **details: Any
    ) -> dict[str, Any]:
        return {
            "participantId": participant_id,
            "action": action,
            "performedBy": performed_by,
            "performedAt": utcnow(),
            "details": strip_none(details),
        }

    def create_request(
        self,
        participant_id: str,
        requested_by: str,
        changes: dict[str, Any],
        notes: str | None = None,
    ) -> str:
        """Record a pending change request and return its id."""
        cleaned = clean_changes(changes)
        if not cleaned:
            raise ValidationError("Request at least one change.")
        if not self.db.collection(PARTICIPANTS).document(participant_id).get().exists:
            raise NotFoundError("Participant not found.")

        request_ref = self.db.collection(CHANGE_REQUESTS).document()
        batch = self.db.batch()
        batch.set(
            request_ref,
            strip_none(
                {
                    "participantId": participant_id,
                    "requestedBy": requested_by,
                    "requestedAt": utcnow(),
                    "status": STATUS_PENDING,
                    "changes": cleaned,
                    "notes": notes or None,
                }
            ),
        )
        batch.set(
            self.db.collection(AUDIT_LOGS).document(),
            self._audit_entry(
                participant_id,
                ACTION_REQUESTED,
                requested_by,
                requestId=request_ref.id,
                notes=f"Requested changes to {', '.join(cleaned)}",
            ),
        )
        batch.commit()
        current_app.logger.info(
            f"Change request {request_ref.id} created for participant {participant_id}"
        )
        return request_ref.id

    def get_request(self, request_id: str) -> ChangeRequest:
        doc = self.db.collection(CHANGE_REQUESTS).document(request_id).get()
        if not doc.exists:
            raise NotFoundError("Change request not found.")
        return snapshot_to_dict(doc)  # type: ignore[return-value]

    def _pending(self, request_id: str) -> ChangeRequest:
        request = self.get_request(request_id)
        if request.get("status") != STATUS_PENDING:
            raise InvalidTransitionError(
                f"Change request {request_id} has already been {request.get('status')}."
            )
        return request

    def _pending_query(self) -> Any:
        return self.db.collection(CHANGE_REQUESTS).where(
            filter=firestore.FieldFilter("status", "==", STATUS_PENDING)
        )

    def list_pending(self) -> list[ChangeRequest]:
        """Pending requests, oldest first."""
        requests = [snapshot_to_dict(doc) for doc in self._pending_query().stream()]
        requests.sort(key=lambda r: to_datetime(r.get("requestedAt")) or _EPOCH)
        return requests  # type: ignore[return-value]

    def list_for_participant(self, participant_id: str) -> list[ChangeRequest]:
        docs = (
            self.db.collection(CHANGE_REQUESTS)
            .where(filter=firestore.FieldFilter("participantId", "==", participant_id))
            .stream()
        )
        requests = [snapshot_to_dict(doc) for doc in docs]
        requests.sort(
            key=lambda r: to_datetime(r.get("requestedAt")) or _EPOCH, reverse=True
        )
        return requests  # type: ignore[return-value]

    def subscribe_pending(self, handler: Any) -> Subscription:
        """Live view of pending requests; call ``cancel()`` to stop."""
        return Subscription(self._pending_query(), handler)

    def approve(self, request_id: str, approver_id: str) -> None:
        """Apply a pending request to the participant.

        The status change, the participant update and one audit entry per
        changed field are committed together.
        """
        request = self._pending(request_id)
        participant_id = request["participantId"]
        participant_ref = self.db.collection(PARTICIPANTS).document(participant_id)
        participant_doc = participant_ref.get()
        if not participant_doc.exists:
            raise NotFoundError("Participant not found.")
        current = participant_doc.to_dict() or {}
        changes = clean_changes(request.get("changes") or {})

        batch = self.db.batch()
        batch.update(
            self.db.collection(CHANGE_REQUESTS).document(request_id),
            {
                "status": STATUS_APPROVED,
                "approvedBy": approver_id,
                "approvedAt": utcnow(),
            },
        )
        if changes:
            batch.update(participant_ref, changes)
        for field, new_value in changes.items():
            batch.set(
                self.db.collection(AUDIT_LOGS).document(),
                self._audit_entry(
                    participant_id,
                    ACTION_APPROVED,
                    approver_id,
                    field=field,
                    oldValue=current.get(field),
                    newValue=new_value,
                    requestId=request_id,
                    notes=f"Admin approved change request for {field}",
                ),
            )
        batch.commit()
        current_app.logger.info(
            f"Change request {request_id} approved by {approver_id}: "
            f"{', '.join(changes) or 'no changes'}"
        )

    def reject(
        self, request_id: str, approver_id: str, notes: str | None = None
    ) -> None:
        """Reject a pending request; the participant is left untouched."""
        request = self._pending(request_id)
        batch = self.db.batch()
        batch.update(
            self.db.collection(CHANGE_REQUESTS).document(request_id),
            strip_none(
                {
                    "status": STATUS_REJECTED,
                    "approvedBy": approver_id,
                    "approvedAt": utcnow(),
                    "reviewNotes": notes or None,
                }
            ),
        )
        batch.set(
            self.db.collection(AUDIT_LOGS).document(),
            self._audit_entry(
                request["participantId"],
                ACTION_REJECTED,
                approver_id,
                requestId=request_id,
                notes=notes or None,
            ),
        )
        batch.commit()
        current_app.logger.info(
            f"Change request {request_id} rejected by {approver_id}"
        )

    def audit_logs(self, participant_id: str | None = None) -> list[AuditLog]:
        """Audit entries, newest first, for one participant or everyone."""
        query: Any = self.db.collection(AUDIT_LOGS)
        if participant_id:
            query = query.where(
                filter=firestore.FieldFilter("participantId", "==", participant_id)
            )
        logs = [snapshot_to_dict(doc) for doc in query.stream()]
        logs.sort(
            key=lambda log: to_datetime(log.get("performedAt")) or _EPOCH, reverse=True
        )
        return logs  # type: ignore[return-value]
