"""Data models for the change request blueprint."""

from __future__ import annotations

from typing import Any, TypedDict

from korban.core.types import FirestoreDocument


class RequestedChanges(TypedDict, total=False):
    name: str
    phone: str
    email: str
    sacrificeType: str


class ChangeRequest(FirestoreDocument, total=False):
    """A participant's request to change their own details."""

    participantId: str
    requestedBy: str
    requestedAt: Any
    status: str
    approvedBy: str
    approvedAt: Any
    changes: RequestedChanges
    notes: str


class AuditLog(FirestoreDocument, total=False):
    """One recorded action on a participant's details."""

    participantId: str
    action: str
    performedBy: str
    performedAt: Any
    details: dict[str, Any]
