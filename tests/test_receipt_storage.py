"""Tests for uploading and deleting receipt files."""

import io
import unittest
from unittest.mock import MagicMock

from google.api_core import exceptions as google_exceptions
from PIL import Image

from korban import create_app
from korban.errors import (
    UploadCancelledError,
    UploadError,
    UploadPermissionError,
    UploadUnknownError,
    ValidationError,
)
from korban.receipt.storage import (
    ReceiptStorage,
    blob_path,
    classify_upload_error,
    file_type,
)

from .images import image_bytes


class ReceiptStorageTestCase(unittest.TestCase):
    def setUp(self):
        self.app = create_app({"TESTING": True})
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.bucket = MagicMock()
        self.blob = self.bucket.blob.return_value
        self.blob.public_url = "https://storage.googleapis.com/b/receipts/x.jpg"
        self.storage = ReceiptStorage(self.bucket, max_width=1200, quality=80)

    def tearDown(self):
        self.app_context.pop()

    def test_upload_path_metadata_and_url(self):
        url = self.storage.upload(
            "p1", "2025-09", "Resit Ogos.PNG", "image/png", image_bytes(300, 300)
        )

        self.assertEqual(url, self.blob.public_url)
        path = self.bucket.blob.call_args[0][0]
        self.assertRegex(path, r"^receipts/receipt_p1_2025-09_\d+\.png$")
        self.assertEqual(self.blob.metadata["participantId"], "p1")
        self.assertEqual(self.blob.metadata["month"], "2025-09")
        self.assertEqual(self.blob.metadata["originalName"], "Resit Ogos.PNG")
        self.assertIn("uploadDate", self.blob.metadata)
        self.blob.make_public.assert_called_once()
        _, kwargs = self.blob.upload_from_string.call_args
        self.assertEqual(kwargs["content_type"], "image/png")

    def test_wide_images_are_scaled_down(self):
        self.storage.upload(
            "p1", "2025-09", "wide.jpg", "image/jpeg", image_bytes(2400, 600, "JPEG")
        )
        uploaded = self.blob.upload_from_string.call_args[0][0]
        with Image.open(io.BytesIO(uploaded)) as img:
            self.assertEqual(img.size, (1200, 300))
            self.assertEqual(img.format, "JPEG")

    def test_pdf_is_uploaded_unchanged(self):
        data = b"%PDF-1.4 receipt"
        self.storage.upload("p1", "2025-09", "resit.pdf", "application/pdf", data)
        self.assertEqual(self.blob.upload_from_string.call_args[0][0], data)

    def test_invalid_file_never_reaches_storage(self):
        with self.assertRaises(ValidationError):
            self.storage.upload(
                "p1", "2025-09", "x.png", "image/png", image_bytes(50, 50)
            )
        self.bucket.blob.assert_not_called()

    def test_oversized_file_never_reaches_storage(self):
        data = b"%PDF" + b"0" * (10 * 1024 * 1024)
        with self.assertRaises(ValidationError):
            self.storage.upload("p1", "2025-09", "x.pdf", "application/pdf", data)
        self.bucket.blob.assert_not_called()

    def test_permission_failure_is_classified(self):
        self.blob.upload_from_string.side_effect = google_exceptions.Forbidden("no")
        with self.assertRaises(UploadPermissionError):
            self.storage.upload(
                "p1", "2025-09", "x.png", "image/png", image_bytes(200, 200)
            )
        self.blob.make_public.assert_not_called()

    def test_delete_extracts_path_from_url(self):
        url = (
            "https://firebasestorage.googleapis.com/v0/b/proj.appspot.com/o/"
            "receipts%2Freceipt_p1_2025-09_1.jpg?alt=media&token=abc"
        )
        self.assertTrue(self.storage.delete(url))
        self.bucket.blob.assert_called_once_with("receipts/receipt_p1_2025-09_1.jpg")

    def test_delete_missing_file_is_not_an_error(self):
        self.blob.delete.side_effect = google_exceptions.NotFound("gone")
        self.assertFalse(self.storage.delete("receipts/a.jpg"))


class HelpersTestCase(unittest.TestCase):
    def test_classify_upload_error(self):
        cases = [
            (google_exceptions.Unauthorized("x"), UploadPermissionError),
            (ConnectionError("reset"), UploadPermissionError),
            (google_exceptions.Cancelled("x"), UploadCancelledError),
            (google_exceptions.Unknown("x"), UploadUnknownError),
        ]
        for error, expected in cases:
            self.assertIs(type(classify_upload_error(error)), expected)
        self.assertIs(type(classify_upload_error(RuntimeError("x"))), UploadError)

    def test_classified_errors_have_distinct_messages(self):
        messages = {
            UploadPermissionError().message,
            UploadCancelledError().message,
            UploadUnknownError().message,
        }
        self.assertEqual(len(messages), 3)

    def test_file_type(self):
        self.assertEqual(file_type("https://x/receipt.PDF"), "pdf")
        self.assertEqual(file_type("https://x/a", "application/pdf"), "pdf")
        self.assertEqual(file_type("https://x/a.jpg", "image/jpeg"), "image")

    def test_blob_path(self):
        self.assertEqual(blob_path("receipts/a.jpg"), "receipts/a.jpg")
        self.assertEqual(
            blob_path("https://storage.googleapis.com/bucket/receipts/a.jpg"),
            "receipts/a.jpg",
        )
        self.assertEqual(blob_path("gs://bucket/receipts/a.jpg"), "receipts/a.jpg")
