"""Housekeeping over the receipt files in the storage bucket.

Files are fetched a batch at a time with a small thread pool so memory and
request rate stay bounded. A file that cannot be fetched or deleted is
logged and skipped; it never aborts the rest of the operation.
"""

from __future__ import annotations

import datetime
import io
import json
import re
import zipfile
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from flask import current_app

from korban.constants import (
    BACKUP_MANIFEST_NAME,
    PROFILES_PREFIX,
    RECEIPT_FILE_ALERT_THRESHOLD,
    RECEIPT_UPLOADS,
    RECEIPTS_PREFIX,
    STATUS_REJECTED,
    STORAGE_CRITICAL_PERCENT,
    STORAGE_WARNING_PERCENT,
)
from korban.errors import NotFoundError
from korban.receipt.storage import blob_path
from korban.utils import format_bytes, month_key, to_datetime, utcnow

from .models import (
    BackupResult,
    FileInfo,
    ManifestEntry,
    StorageAlert,
    StorageUsage,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.storage.blob import Blob
    from google.cloud.storage.bucket import Bucket

ProgressCallback = Callable[[float, str], None]

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024 * 1024
DATE_IN_NAME_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def _iso(value: Any) -> str | None:
    moment = to_datetime(value)
    return moment.isoformat() if moment else None


def backup_path(full_path: str, today: datetime.date | None = None) -> str:
    """Where a stored file goes inside the backup archive."""
    name = _basename(full_path)
    if full_path.startswith(RECEIPTS_PREFIX):
        match = DATE_IN_NAME_RE.search(name)
        if match:
            date_folder = match.group(1)
        else:
            date_folder = (today or utcnow().date()).isoformat()
        return f"backup/receipts/{date_folder}/{name}"
    if full_path.startswith(PROFILES_PREFIX):
        return f"backup/profiles/{name}"
    return f"backup/misc/{name}"


def storage_alerts(
    usage: StorageUsage, quota_bytes: int = DEFAULT_QUOTA_BYTES
) -> list[StorageAlert]:
    """Warnings about how close the bucket is to its quota."""
    alerts: list[StorageAlert] = []
    percent = usage["total_bytes"] / quota_bytes * 100 if quota_bytes else 0
    if percent >= STORAGE_CRITICAL_PERCENT:
        alerts.append(
            {
                "type": "critical",
                "message": "Storage is almost full. Back up and clean up now "
                "to avoid losing data.",
            }
        )
    elif percent >= STORAGE_WARNING_PERCENT:
        alerts.append(
            {
                "type": "warning",
                "message": f"Storage usage is above {STORAGE_WARNING_PERCENT}%. "
                "Consider a backup and cleanup.",
            }
        )
    if usage["total_files"] > RECEIPT_FILE_ALERT_THRESHOLD:
        alerts.append(
            {
                "type": "info",
                "message": f"There are {usage['total_files']} receipt files. "
                "Consider archiving old files.",
            }
        )
    return alerts


def export_stats(usage: StorageUsage) -> str:
    """Usage statistics as a JSON document for download."""
    stats = {
        "generatedAt": utcnow().isoformat(),
        "totalSize": format_bytes(usage["total_bytes"]),
        "totalFiles": usage["total_files"],
        "monthlyBreakdown": [
            {
                "month": month["month"],
                "fileCount": month["count"],
                "size": format_bytes(month["size_bytes"]),
            }
            for month in usage["per_month"]
        ],
    }
    return json.dumps(stats, indent=2)


class StorageService:
    """Usage, archives and cleanup for the storage bucket."""

    def __init__(
        self,
        bucket: Bucket,
        db: Client | None = None,
        batch_size: int = 10,
    ) -> None:
        self.bucket = bucket
        self.db = db
        self.batch_size = batch_size

    def _list(self, prefix: str | None = None) -> list[Blob]:
        # Zero-byte "folder" placeholders end in a slash
        return [
            blob
            for blob in self.bucket.list_blobs(prefix=prefix)
            if not blob.name.endswith("/")
        ]

    def _fetch_all(
        self,
        blobs: list[Blob],
        on_fetched: Callable[[Blob, bytes], None],
    ) -> list[str]:
        """Download blobs a batch at a time; return the paths that failed.

        ``on_fetched`` runs on the calling thread, in the order the blobs
        were given.
        """
        failed: list[str] = []
        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for start in range(0, len(blobs), self.batch_size):
                batch = blobs[start : start + self.batch_size]
                futures = [
                    (blob, executor.submit(blob.download_as_bytes)) for blob in batch
                ]
                for blob, future in futures:
                    try:
                        data = future.result()
                    except Exception as e:
                        current_app.logger.warning(
                            f"Failed to download {blob.name}: {e}"
                        )
                        failed.append(blob.name)
                        continue
                    on_fetched(blob, data)
        return failed

    def usage(self) -> StorageUsage:
        """Receipt file totals and a per-month breakdown, newest month first."""
        blobs = self._list(RECEIPTS_PREFIX)
        per_month: dict[str, dict[str, int]] = {}
        total_bytes = 0
        for blob in blobs:
            size = blob.size or 0
            total_bytes += size
            month = month_key(blob.time_created) or "unknown"
            bucket = per_month.setdefault(month, {"count": 0, "size_bytes": 0})
            bucket["count"] += 1
            bucket["size_bytes"] += size
        return {
            "total_bytes": total_bytes,
            "total_files": len(blobs),
            "per_month": [
                {"month": month, **counts}  # type: ignore[typeddict-item]
                for month, counts in sorted(per_month.items(), reverse=True)
            ],
        }

    def _month_blobs(self, month: str) -> list[Blob]:
        blobs = [
            blob
            for blob in self._list(RECEIPTS_PREFIX)
            if month_key(blob.time_created) == month
        ]
        blobs.sort(key=lambda b: to_datetime(b.time_created), reverse=True)
        return blobs

    def files_for_month(self, month: str) -> list[FileInfo]:
        """Receipt files uploaded during ``month``, newest first."""
        return [
            {
                "name": _basename(blob.name),
                "path": blob.name,
                "size": blob.size or 0,
                "time_created": _iso(blob.time_created),
                "url": blob.public_url,
            }
            for blob in self._month_blobs(month)
        ]

    def download_month(self, month: str) -> bytes:
        """ZIP of the month's receipt files under ``receipts/<month>/``."""
        blobs = self._month_blobs(month)
        if not blobs:
            raise NotFoundError(f"No receipt files found for {month}.")

        buffer = io.BytesIO()
        with zipfile.ZipFile(
            buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=6
        ) as archive:

            def add(blob: Blob, data: bytes) -> None:
                archive.writestr(f"receipts/{month}/{_basename(blob.name)}", data)

            failed = self._fetch_all(blobs, add)

        current_app.logger.info(
            f"Built receipt archive for {month}: {len(blobs) - len(failed)} files, "
            f"{len(failed)} skipped"
        )
        return buffer.getvalue()

    def cleanup_rejected(
        self, max_age_days: int = 30, now: datetime.datetime | None = None
    ) -> int:
        """Delete the files of receipts rejected more than ``max_age_days`` ago.

        Returns the number of files deleted. The receipt records are kept.
        """
        if self.db is None:
            raise ValueError("A Firestore client is required to find receipts.")
        cutoff = (now or utcnow()) - datetime.timedelta(days=max_age_days)
        docs = (
            self.db.collection(RECEIPT_UPLOADS)
            .where(filter=firestore.FieldFilter("status", "==", STATUS_REJECTED))
            .stream()
        )

        deleted = 0
        for doc in docs:
            data = doc.to_dict() or {}
            rejected_at = to_datetime(data.get("approvedDate"))
            url = data.get("receiptImageUrl")
            if rejected_at is None or not url or rejected_at >= cutoff:
                continue
            path = blob_path(url)
            try:
                self.bucket.blob(path).delete()
            except Exception as e:
                current_app.logger.warning(f"Failed to delete file {path}: {e}")
                continue
            deleted += 1
            current_app.logger.info(f"Deleted old rejected receipt file: {path}")
        return deleted

    def full_backup(self, on_progress: ProgressCallback | None = None) -> BackupResult:
        """ZIP of every file in the bucket with a manifest.

        Progress runs to 90 while files are fetched, 95 while the archive is
        finalised and 100 when done.
        """

        def report(progress: float, message: str) -> None:
            if on_progress is not None:
                on_progress(progress, message)

        blobs = self._list()
        if not blobs:
            return {
                "success": False,
                "backup_size": 0,
                "file_count": 0,
                "error": "No files found to backup",
            }

        report(0, "Starting backup...")
        today = utcnow().date()
        manifest: dict[str, Any] = {
            "backupDate": utcnow().isoformat(),
            "fileCount": len(blobs),
            "files": [],
        }
        processed = 0
        buffer = io.BytesIO()
        with zipfile.ZipFile(
            buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=6
        ) as archive:

            def add(blob: Blob, data: bytes) -> None:
                nonlocal processed
                archive.writestr(backup_path(blob.name, today), data)
                entry: ManifestEntry = {
                    "path": blob.name,
                    "size": blob.size or len(data),
                    "lastModified": _iso(blob.time_created),
                    "contentType": blob.content_type,
                }
                manifest["files"].append(entry)
                processed += 1
                report(
                    processed / len(blobs) * 90,
                    f"Processing: {_basename(blob.name)}",
                )

            failed = self._fetch_all(blobs, add)
            report(95, "Generating ZIP file...")
            archive.writestr(BACKUP_MANIFEST_NAME, json.dumps(manifest, indent=2))

        data = buffer.getvalue()
        report(100, "Backup complete!")
        current_app.logger.info(
            f"Full backup: {processed} files, {len(failed)} failed, "
            f"{format_bytes(len(data))}"
        )
        return {
            "success": True,
            "backup_size": len(data),
            "file_count": processed,
            "failed": failed,
            "data": data,
        }
