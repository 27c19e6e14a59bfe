"""Data models for the storage blueprint."""

from __future__ import annotations

from typing import Optional, TypedDict


class MonthUsage(TypedDict):
    month: str
    count: int
    size_bytes: int


class StorageUsage(TypedDict):
    """Size and count of receipt files, in total and per upload month."""

    total_bytes: int
    total_files: int
    per_month: list[MonthUsage]


class FileInfo(TypedDict):
    name: str
    path: str
    size: int
    time_created: Optional[str]
    url: str


class StorageAlert(TypedDict):
    type: str
    message: str


class ManifestEntry(TypedDict):
    path: str
    size: int
    lastModified: Optional[str]
    contentType: Optional[str]


class BackupResult(TypedDict, total=False):
    success: bool
    backup_size: int
    file_count: int
    failed: list[str]
    data: bytes
    error: str
