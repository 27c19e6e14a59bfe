"""Service layer for participant records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from korban.constants import (
    DEFAULT_SACRIFICE_TYPE,
    PARTICIPANTS,
    SACRIFICE_TYPES,
)
from korban.errors import NotFoundError, ValidationError
from korban.subscriptions import Subscription
from korban.utils import snapshot_to_dict, strip_none

from .models import Participant

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

EDITABLE_FIELDS = ("name", "groupId", "phone", "email", "userId", "sacrificeType")


def _check_sacrifice_type(value: str | None) -> None:
    if value is not None and value not in SACRIFICE_TYPES:
        raise ValidationError(f"Unknown sacrifice type: {value}")


class ParticipantService:
    """Create, edit and query participants."""

    def __init__(self, db: Client) -> None:
        self.db = db

    def create_participant(self, data: dict[str, Any]) -> str:
        """Create a participant and return its id."""
        if not (data.get("name") or "").strip():
            raise ValidationError("Participant name is required.")
        if not data.get("groupId"):
            raise ValidationError("Participant must belong to a group.")
        sacrifice_type = data.get("sacrificeType") or DEFAULT_SACRIFICE_TYPE
        _check_sacrifice_type(sacrifice_type)

        payload = strip_none(
            {
                "name": data["name"].strip(),
                "groupId": data["groupId"],
                "phone": data.get("phone") or None,
                "email": data.get("email") or None,
                "userId": data.get("userId") or None,
                "sacrificeType": sacrifice_type,
            }
        )
        _, ref = self.db.collection(PARTICIPANTS).add(payload)
        return ref.id

    def update_participant(self, participant_id: str, updates: dict[str, Any]) -> None:
        """Apply a partial update restricted to the editable fields."""
        allowed = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS}
        if not allowed:
            raise ValidationError("Nothing to update.")
        _check_sacrifice_type(allowed.get("sacrificeType"))
        ref = self.db.collection(PARTICIPANTS).document(participant_id)
        if not ref.get().exists:
            raise NotFoundError("Participant not found.")
        ref.update(allowed)

    def delete_participant(self, participant_id: str) -> None:
        ref = self.db.collection(PARTICIPANTS).document(participant_id)
        if not ref.get().exists:
            raise NotFoundError("Participant not found.")
        ref.delete()

    def get_participant(self, participant_id: str) -> Participant:
        doc = self.db.collection(PARTICIPANTS).document(participant_id).get()
        if not doc.exists:
            raise NotFoundError("Participant not found.")
        return snapshot_to_dict(doc)  # type: ignore[return-value]

    def list_participants(self, group_id: str | None = None) -> list[Participant]:
        """All participants, or only those of one group, sorted by name."""
        query: Any = self.db.collection(PARTICIPANTS)
        if group_id:
            query = query.where(filter=firestore.FieldFilter("groupId", "==", group_id))
        participants = [snapshot_to_dict(doc) for doc in query.stream()]
        participants.sort(key=lambda p: (p.get("name") or "").lower())
        return participants  # type: ignore[return-value]

    def subscribe(self, handler: Any, group_id: str | None = None) -> Subscription:
        """Live view of all participants, or those of one group."""
        query: Any = self.db.collection(PARTICIPANTS)
        if group_id:
            query = query.where(filter=firestore.FieldFilter("groupId", "==", group_id))
        return Subscription(query, handler)
