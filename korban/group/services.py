"""Service layer for group operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from korban.constants import GROUPS
from korban.errors import NotFoundError, ValidationError
from korban.subscriptions import Subscription
from korban.utils import natural_sort_key, snapshot_to_dict, strip_none

from .models import Group

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


class GroupService:
    """Create, edit and list participant groups."""

    def __init__(self, db: Client) -> None:
        self.db = db

    def create_group(self, name: str, description: str | None = None) -> str:
        """Create a group and return its id."""
        if not name or not name.strip():
            raise ValidationError("Group name is required.")
        payload = strip_none(
            {
                "name": name.strip(),
                "description": description,
                "createdAt": firestore.SERVER_TIMESTAMP,
            }
        )
        _, ref = self.db.collection(GROUPS).add(payload)
        return ref.id

    def update_group(self, group_id: str, updates: dict[str, Any]) -> None:
        """Edit a group's name and/or description."""
        allowed = {k: v for k, v in updates.items() if k in ("name", "description")}
        if not allowed:
            raise ValidationError("Nothing to update.")
        ref = self.db.collection(GROUPS).document(group_id)
        if not ref.get().exists:
            raise NotFoundError("Group not found.")
        ref.update(allowed)

    def delete_group(self, group_id: str) -> None:
        """Delete a group.

        Participants are left in place; they show up as orphaned in the
        integrity scan until cleaned up.
        """
        ref = self.db.collection(GROUPS).document(group_id)
        if not ref.get().exists:
            raise NotFoundError("Group not found.")
        ref.delete()

    def get_group(self, group_id: str) -> Group:
        doc = self.db.collection(GROUPS).document(group_id).get()
        if not doc.exists:
            raise NotFoundError("Group not found.")
        return snapshot_to_dict(doc)  # type: ignore[return-value]

    def list_groups(self) -> list[Group]:
        """All groups in natural name order."""
        groups = [snapshot_to_dict(doc) for doc in self.db.collection(GROUPS).stream()]
        groups.sort(key=lambda g: natural_sort_key(g.get("name", "")))
        return groups  # type: ignore[return-value]

    def subscribe(self, handler: Any) -> Subscription:
        """Push the full group list to ``handler`` whenever it changes."""
        return Subscription(self.db.collection(GROUPS), handler)
