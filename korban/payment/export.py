"""CSV export of the monthly payment report."""

from __future__ import annotations

import csv
import io
from typing import Any

from korban.constants import MONTH_LABELS

from .services import paid_date_display, participant_price

REPORT_COLUMNS = [
    "Nama Peserta",
    "Kumpulan",
    "Bulan",
    "Status",
    "Jumlah (RM)",
    "Tarikh Bayar",
    "Telefon",
    "Email",
]


def payment_report_rows(
    participants: list[dict[str, Any]],
    groups: list[dict[str, Any]],
    payments: list[dict[str, Any]],
    month: str,
    monthly_amount: float,
    group_id: str | None = None,
) -> list[dict[str, Any]]:
    """One row per participant for ``month``, optionally for one group only."""
    group_names = {g["id"]: g.get("name", "") for g in groups}
    by_participant = {p.get("participantId"): p for p in payments}
    rows = []
    for participant in participants:
        if group_id and participant.get("groupId") != group_id:
            continue
        payment = by_participant.get(participant["id"])
        is_paid = bool(payment and payment.get("isPaid"))
        rows.append(
            {
                "Nama Peserta": participant.get("name", ""),
                "Kumpulan": group_names.get(participant.get("groupId"), "Unknown"),
                "Bulan": MONTH_LABELS.get(month, month),
                "Status": "Sudah Bayar" if is_paid else "Belum Bayar",
                "Jumlah (RM)": participant_price(participant, monthly_amount),
                "Tarikh Bayar": paid_date_display(payment) if payment else "-",
                "Telefon": participant.get("phone") or "-",
                "Email": participant.get("email") or "-",
            }
        )
    return rows


def rows_to_csv(rows: list[dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=REPORT_COLUMNS)
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()
