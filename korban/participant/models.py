"""Data models for the participant blueprint."""

from __future__ import annotations

from korban.core.types import FirestoreDocument


class Participant(FirestoreDocument, total=False):
    """A participant document in Firestore.

    ``groupId`` is a plain string reference; nothing in Firestore enforces
    that the group exists.
    """

    name: str
    groupId: str
    phone: str
    email: str
    userId: str
    sacrificeType: str
