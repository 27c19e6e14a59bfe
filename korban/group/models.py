"""Data models for the group blueprint."""

from __future__ import annotations

from korban.core.types import FirestoreDocument


class Group(FirestoreDocument, total=False):
    """A group document in Firestore."""

    name: str
    description: str
