"""Data models for the payment blueprint."""

from __future__ import annotations

from typing import Any, TypedDict

from korban.core.types import FirestoreDocument


class Payment(FirestoreDocument, total=False):
    """A payment document in Firestore, one per (participant, month)."""

    participantId: str
    month: str
    amount: float
    isPaid: bool
    paidDate: Any
    paymentMethod: str
    notes: str


class PaymentSummary(TypedDict):
    """Collection progress of one group for one month."""

    groupId: str
    groupName: str
    month: str
    totalParticipants: int
    totalPaid: int
    totalAmount: float
    expectedAmount: float
    completionPercentage: float


class MonthProgress(TypedDict):
    month: str
    label: str
    filled: bool


class PaymentProgress(TypedDict):
    """Sequential progress bar for a participant."""

    paidCount: int
    totalMonths: int
    paidAmount: float
    months: list[MonthProgress]


class DuplicatePayments(TypedDict):
    participantId: str
    month: str
    payments: list[Payment]


class PaymentAnalysis(TypedDict):
    """Problems found in the payments collection."""

    duplicates: list[DuplicatePayments]
    suspiciousAmounts: list[Payment]
    orphanedPayments: list[Payment]
    totalIssues: int
