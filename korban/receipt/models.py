"""Data models for the receipt blueprint."""

from __future__ import annotations

from typing import Any

from korban.core.types import FirestoreDocument


class ReceiptUpload(FirestoreDocument, total=False):
    """A receipt submitted by a participant for admin review.

    ``rejectionReason`` is present only on rejected receipts. ``approvedBy``
    and ``approvedDate`` record whoever decided the receipt, either way.
    """

    participantId: str
    month: str
    amount: float
    receiptImageUrl: str
    uploadDate: Any
    status: str
    rejectionReason: str
    approvedBy: str
    approvedDate: Any
    notes: str
    fileType: str
