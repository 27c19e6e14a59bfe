"""Consistency checks over the payments collection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import current_app

from korban.constants import PAYMENTS

from .models import DuplicatePayments, Payment, PaymentAnalysis

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def analyze_payment_data(
    payments: list[Payment],
    participants: list[dict[str, Any]],
    expected_amount: float = 100,
) -> PaymentAnalysis:
    """Find duplicate, suspicious and orphaned payments.

    * duplicates: more than one payment for the same (participant, month),
    * suspicious: amount different from the fixed monthly amount,
    * orphaned: payment whose participant no longer exists.
    """
    by_key: dict[tuple[str, str], list[Payment]] = {}
    for payment in payments:
        key = (payment.get("participantId", ""), payment.get("month", ""))
        by_key.setdefault(key, []).append(payment)

    duplicates: list[DuplicatePayments] = [
        {"participantId": pid, "month": month, "payments": group}
        for (pid, month), group in by_key.items()
        if len(group) > 1
    ]
    suspicious = [p for p in payments if p.get("amount") != expected_amount]
    participant_ids = {p["id"] for p in participants}
    orphaned = [p for p in payments if p.get("participantId") not in participant_ids]

    return {
        "duplicates": duplicates,
        "suspiciousAmounts": suspicious,
        "orphanedPayments": orphaned,
        "totalIssues": len(duplicates) + len(suspicious) + len(orphaned),
    }


def cleanup_duplicate_payments(db: Client, duplicates: list[DuplicatePayments]) -> int:
    """Keep the first payment of each duplicate set and delete the rest."""
    cleaned = 0
    for duplicate in duplicates:
        for payment in duplicate["payments"][1:]:
            try:
                db.collection(PAYMENTS).document(payment["id"]).delete()
            except Exception as e:
                current_app.logger.error(
                    f"Failed to delete payment {payment['id']}: {e}"
                )
                continue
            cleaned += 1
            current_app.logger.info(
                f"Deleted duplicate payment {payment['id']} for participant "
                f"{duplicate['participantId']} month {duplicate['month']}"
            )
    return cleaned


def generate_data_report(
    analysis: PaymentAnalysis, expected_amount: float = 100
) -> str:
    """Plain-text report of a payment analysis."""
    lines = ["=== DATA ANALYSIS REPORT ===", ""]
    lines.append(f"Total Issues Found: {analysis['totalIssues']}")
    lines.append("")

    if analysis["duplicates"]:
        lines.append(f"DUPLICATE PAYMENTS: {len(analysis['duplicates'])}")
        for dup in analysis["duplicates"]:
            lines.append(
                f"  - Participant {dup['participantId']}, Month {dup['month']}: "
                f"{len(dup['payments'])} payments"
            )
        lines.append("")

    if analysis["suspiciousAmounts"]:
        lines.append(f"SUSPICIOUS AMOUNTS: {len(analysis['suspiciousAmounts'])}")
        for payment in analysis["suspiciousAmounts"]:
            lines.append(
                f"  - Payment {payment['id']}: RM{payment.get('amount')} "
                f"(expected RM{expected_amount:g})"
            )
        lines.append("")

    if analysis["orphanedPayments"]:
        lines.append(f"ORPHANED PAYMENTS: {len(analysis['orphanedPayments'])}")
        for payment in analysis["orphanedPayments"]:
            lines.append(
                f"  - Payment {payment['id']}: "
                f"Participant {payment.get('participantId')} not found"
            )
        lines.append("")

    if analysis["totalIssues"] == 0:
        lines.append("No data issues detected!")

    return "\n".join(lines)
