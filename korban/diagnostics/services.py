"""Consistency checks over groups and participants."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import current_app

from korban.constants import FIRESTORE_BATCH_LIMIT, GROUPS, PARTICIPANTS
from korban.utils import snapshot_to_dict

from .models import DuplicateParticipants, ScanResult

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def find_orphaned(
    groups: list[dict[str, Any]], participants: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Participants whose group no longer exists."""
    group_ids = {group["id"] for group in groups}
    return [p for p in participants if p.get("groupId") not in group_ids]


def find_duplicates(
    participants: list[dict[str, Any]],
) -> list[DuplicateParticipants]:
    """Participants sharing the same (name, groupId), in first-seen order."""
    by_key: dict[tuple[str, str], list[str]] = {}
    for participant in participants:
        key = (participant.get("name", ""), participant.get("groupId", ""))
        by_key.setdefault(key, []).append(participant["id"])
    return [
        {"name": name, "groupId": group_id, "ids": ids}
        for (name, group_id), ids in by_key.items()
        if len(ids) > 1
    ]


class IntegrityScanner:
    """Reads every group and participant and reports what does not add up.

    Scanning never writes; orphaned participants are only removed by an
    explicit call to ``delete_orphaned``.
    """

    def __init__(self, db: Client, group_capacity: int = 7) -> None:
        self.db = db
        self.group_capacity = group_capacity

    def _read_all(self) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        groups = [snapshot_to_dict(doc) for doc in self.db.collection(GROUPS).stream()]
        participants = [
            snapshot_to_dict(doc) for doc in self.db.collection(PARTICIPANTS).stream()
        ]
        return groups, participants

    def scan(self) -> ScanResult:
        groups, participants = self._read_all()
        counts_by_group: dict[str, int] = {group["id"]: 0 for group in groups}
        for participant in participants:
            group_id = participant.get("groupId")
            if group_id in counts_by_group:
                counts_by_group[group_id] += 1

        orphaned = find_orphaned(groups, participants)
        duplicates = find_duplicates(participants)
        expected = len(groups) * self.group_capacity
        actual = len(participants)
        current_app.logger.info(
            f"Integrity scan: {len(groups)} groups, {actual} participants, "
            f"{len(orphaned)} orphaned, {len(duplicates)} duplicate sets"
        )
        return {
            "groups": groups,
            "participants": participants,
            "counts_by_group": counts_by_group,
            "orphaned": orphaned,
            "duplicates": duplicates,
            "expected": expected,
            "actual": actual,
            "discrepancy": actual - expected,
        }

    def delete_orphaned(self) -> int:
        """Delete every participant whose group no longer exists."""
        groups, participants = self._read_all()
        orphaned = find_orphaned(groups, participants)
        for start in range(0, len(orphaned), FIRESTORE_BATCH_LIMIT):
            batch = self.db.batch()
            for participant in orphaned[start : start + FIRESTORE_BATCH_LIMIT]:
                ref = self.db.collection(PARTICIPANTS).document(participant["id"])
                batch.delete(ref)
            batch.commit()
        for participant in orphaned:
            current_app.logger.info(
                f"Deleted orphaned participant {participant['id']} "
                f"({participant.get('name')}, group {participant.get('groupId')})"
            )
        return len(orphaned)

    def check_connection(self) -> dict[str, Any]:
        """Read both collections and report whether the database answered."""
        try:
            groups, participants = self._read_all()
        except Exception as e:
            current_app.logger.error(f"Firestore connection test failed: {e}")
            return {"success": False, "message": str(e)}
        return {
            "success": True,
            "groupsCount": len(groups),
            "participantsCount": len(participants),
        }
