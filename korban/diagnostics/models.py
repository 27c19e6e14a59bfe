"""Data models for the diagnostics blueprint."""

from __future__ import annotations

from typing import Any, TypedDict


class DuplicateParticipants(TypedDict):
    """Participants sharing a name within one group."""

    name: str
    groupId: str
    ids: list[str]


class ScanResult(TypedDict):
    groups: list[dict[str, Any]]
    participants: list[dict[str, Any]]
    counts_by_group: dict[str, int]
    orphaned: list[dict[str, Any]]
    duplicates: list[DuplicateParticipants]
    expected: int
    actual: int
    discrepancy: int
