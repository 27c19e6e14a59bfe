"""Tests for storage usage, archives, cleanup and backup."""

import datetime
import io
import json
import zipfile
from unittest.mock import MagicMock

from korban.errors import NotFoundError
from korban.storage.services import (
    StorageService,
    backup_path,
    export_stats,
    storage_alerts,
)

from .helpers import BaseTestCase

UTC = datetime.timezone.utc
GB = 1024 * 1024 * 1024


def make_blob(name, created, size=100, data=None, content_type="image/jpeg"):
    blob = MagicMock()
    blob.name = name
    blob.size = size
    blob.time_created = created
    blob.content_type = content_type
    blob.public_url = f"https://storage.googleapis.com/bucket/{name}"
    blob.download_as_bytes.return_value = data if data is not None else b"x" * size
    return blob


class StorageServiceTestCase(BaseTestCase):
    def setUp(self):
        super().setUp()
        self.bucket = MagicMock()
        self.blobs = [
            make_blob("receipts/a.jpg", datetime.datetime(2025, 8, 30, tzinfo=UTC)),
            make_blob(
                "receipts/b.jpg", datetime.datetime(2025, 9, 1, tzinfo=UTC), size=200
            ),
            make_blob("receipts/c.pdf", datetime.datetime(2025, 9, 30, tzinfo=UTC)),
            make_blob("receipts/d.jpg", datetime.datetime(2025, 10, 1, tzinfo=UTC)),
        ]
        self.bucket.list_blobs.return_value = self.blobs
        self.service = StorageService(self.bucket, self.db, batch_size=2)

    def test_usage_breakdown_newest_month_first(self):
        usage = self.service.usage()

        self.assertEqual(usage["total_bytes"], 500)
        self.assertEqual(usage["total_files"], 4)
        self.assertEqual(
            usage["per_month"],
            [
                {"month": "2025-10", "count": 1, "size_bytes": 100},
                {"month": "2025-09", "count": 2, "size_bytes": 300},
                {"month": "2025-08", "count": 1, "size_bytes": 100},
            ],
        )
        self.bucket.list_blobs.assert_called_with(prefix="receipts/")

    def test_files_for_month(self):
        files = self.service.files_for_month("2025-09")
        self.assertEqual([f["name"] for f in files], ["c.pdf", "b.jpg"])

    def test_download_month_contains_only_that_month(self):
        data = self.service.download_month("2025-09")

        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            self.assertEqual(
                sorted(archive.namelist()),
                ["receipts/2025-09/b.jpg", "receipts/2025-09/c.pdf"],
            )
        self.blobs[0].download_as_bytes.assert_not_called()
        self.blobs[3].download_as_bytes.assert_not_called()

    def test_download_month_skips_failed_files(self):
        self.blobs[1].download_as_bytes.side_effect = RuntimeError("timeout")
        data = self.service.download_month("2025-09")
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            self.assertEqual(archive.namelist(), ["receipts/2025-09/c.pdf"])

    def test_download_empty_month(self):
        with self.assertRaises(NotFoundError):
            self.service.download_month("2026-01")

    def add_rejected(self, receipt_id, rejected_at, status="rejected"):
        self.db.collection("receiptUploads").document(receipt_id).set(
            {
                "status": status,
                "approvedDate": rejected_at,
                "receiptImageUrl": (
                    f"https://storage.googleapis.com/bucket/receipts/{receipt_id}.jpg"
                ),
            }
        )

    def test_cleanup_rejected_respects_age(self):
        now = datetime.datetime(2025, 11, 1, tzinfo=UTC)
        self.add_rejected("old", now - datetime.timedelta(days=31))
        self.add_rejected("recent", now - datetime.timedelta(days=29))
        self.add_rejected(
            "approved", now - datetime.timedelta(days=60), status="approved"
        )

        deleted = self.service.cleanup_rejected(30, now=now)

        self.assertEqual(deleted, 1)
        self.bucket.blob.assert_called_once_with("receipts/old.jpg")

    def test_cleanup_rejected_continues_after_failure(self):
        now = datetime.datetime(2025, 11, 1, tzinfo=UTC)
        self.add_rejected("old1", now - datetime.timedelta(days=40))
        self.add_rejected("old2", now - datetime.timedelta(days=50))
        self.bucket.blob.return_value.delete.side_effect = [
            RuntimeError("denied"),
            None,
        ]

        self.assertEqual(self.service.cleanup_rejected(30, now=now), 1)
        self.assertEqual(self.bucket.blob.call_count, 2)

    def test_full_backup(self):
        self.bucket.list_blobs.return_value = [
            make_blob(
                "receipts/receipt_p1_2025-09_2025-09-03.jpg",
                datetime.datetime(2025, 9, 3, tzinfo=UTC),
            ),
            make_blob("profiles/p1.png", datetime.datetime(2025, 9, 3, tzinfo=UTC)),
            make_blob("exports/report.csv", datetime.datetime(2025, 9, 3, tzinfo=UTC)),
            make_blob("receipts/", None, size=0),
        ]
        progress = []

        result = self.service.full_backup(
            on_progress=lambda pct, message: progress.append(pct)
        )

        self.assertTrue(result["success"])
        self.assertEqual(result["file_count"], 3)
        self.assertEqual(result["backup_size"], len(result["data"]))
        with zipfile.ZipFile(io.BytesIO(result["data"])) as archive:
            names = set(archive.namelist())
            manifest = json.loads(archive.read("backup-manifest.json"))
        self.assertEqual(
            names,
            {
                "backup/receipts/2025-09-03/receipt_p1_2025-09_2025-09-03.jpg",
                "backup/profiles/p1.png",
                "backup/misc/report.csv",
                "backup-manifest.json",
            },
        )
        self.assertEqual(len(manifest["files"]), 3)
        self.assertEqual(progress[0], 0)
        self.assertEqual(progress[-2:], [95, 100])
        self.assertTrue(all(p <= 90 for p in progress[1:-2]))
        self.assertAlmostEqual(progress[-3], 90)

    def test_full_backup_of_empty_bucket(self):
        self.bucket.list_blobs.return_value = []
        result = self.service.full_backup()
        self.assertFalse(result["success"])
        self.assertEqual(result["file_count"], 0)


class StorageHelpersTestCase(BaseTestCase):
    def usage(self, total_bytes, total_files=10):
        return {"total_bytes": total_bytes, "total_files": total_files, "per_month": []}

    def test_alert_levels(self):
        self.assertEqual(storage_alerts(self.usage(GB)), [])
        warning = storage_alerts(self.usage(int(4.1 * GB)))
        self.assertEqual([a["type"] for a in warning], ["warning"])
        critical = storage_alerts(self.usage(int(4.8 * GB)))
        self.assertEqual([a["type"] for a in critical], ["critical"])
        many = storage_alerts(self.usage(GB, total_files=1001))
        self.assertEqual([a["type"] for a in many], ["info"])

    def test_backup_path_without_date_uses_today(self):
        today = datetime.date(2025, 12, 1)
        self.assertEqual(
            backup_path("receipts/receipt_p1_2025-09_1725.jpg", today),
            "backup/receipts/2025-12-01/receipt_p1_2025-09_1725.jpg",
        )

    def test_export_stats(self):
        usage = {
            "total_bytes": 1536,
            "total_files": 2,
            "per_month": [{"month": "2025-09", "count": 2, "size_bytes": 1536}],
        }
        stats = json.loads(export_stats(usage))
        self.assertEqual(stats["totalSize"], "1.5 KB")
        self.assertEqual(stats["monthlyBreakdown"][0]["fileCount"], 2)
