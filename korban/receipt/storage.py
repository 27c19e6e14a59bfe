"""Upload and delete receipt files in the Firebase Storage bucket."""

from __future__ import annotations

import concurrent.futures
import io
import time
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

from flask import current_app
from google.api_core import exceptions as google_exceptions
from PIL import Image

from korban.constants import PDF_TYPE, RECEIPTS_PREFIX
from korban.errors import (
    UploadCancelledError,
    UploadError,
    UploadPermissionError,
    UploadUnknownError,
    ValidationError,
)
from korban.utils import utcnow

from .validation import validate_receipt

if TYPE_CHECKING:
    from google.cloud.storage.bucket import Bucket

PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}

PERMISSION_ERRORS = (
    google_exceptions.Forbidden,
    google_exceptions.Unauthorized,
    google_exceptions.ServiceUnavailable,
    google_exceptions.TooManyRequests,
    google_exceptions.GatewayTimeout,
    google_exceptions.RetryError,
    ConnectionError,
    TimeoutError,
)
CANCELLED_ERRORS = (google_exceptions.Cancelled, concurrent.futures.CancelledError)


def file_type(url: str | None, content_type: str | None = None) -> str:
    """Return 'pdf' or 'image' for a stored receipt."""
    if (content_type and "pdf" in content_type) or ".pdf" in (url or "").lower():
        return "pdf"
    return "image"


def file_extension(filename: str | None) -> str:
    if filename and "." in filename:
        return filename.rsplit(".", 1)[1].lower()
    return "jpg"


def blob_path(url_or_path: str) -> str:
    """Turn a public or download URL into the object path inside the bucket."""
    if not url_or_path.startswith(("http://", "https://", "gs://")):
        return url_or_path
    parsed = urlparse(url_or_path)
    path = unquote(parsed.path)
    # Firebase download URLs: /v0/b/<bucket>/o/<path>
    if "/o/" in path:
        return path.split("/o/", 1)[1]
    if parsed.scheme == "gs":
        return path.lstrip("/")
    # Public URLs: /<bucket>/<path>
    return path.lstrip("/").split("/", 1)[1]


def compress_image(
    data: bytes, content_type: str, max_width: int = 1200, quality: int = 80
) -> bytes:
    """Shrink an image to ``max_width`` and re-encode it at ``quality``."""
    fmt = PIL_FORMATS[content_type]
    with Image.open(io.BytesIO(data)) as img:
        if img.width > max_width:
            height = round(img.height * max_width / img.width)
            img = img.resize((max_width, height), Image.LANCZOS)
        if fmt == "JPEG" and img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        output = io.BytesIO()
        if fmt == "PNG":
            img.save(output, format=fmt, optimize=True)
        else:
            img.save(output, format=fmt, quality=quality)
    return output.getvalue()


def classify_upload_error(error: Exception) -> UploadError:
    """Map a storage failure to the error shown to the participant."""
    if isinstance(error, PERMISSION_ERRORS):
        return UploadPermissionError()
    if isinstance(error, CANCELLED_ERRORS):
        return UploadCancelledError()
    if isinstance(error, google_exceptions.Unknown):
        return UploadUnknownError()
    return UploadError()


class ReceiptStorage:
    """Receipt files in the storage bucket."""

    def __init__(self, bucket: Bucket, max_width: int = 1200, quality: int = 80):
        self.bucket = bucket
        self.max_width = max_width
        self.quality = quality

    def upload(
        self,
        participant_id: str,
        month: str,
        filename: str | None,
        content_type: str | None,
        data: bytes,
    ) -> str:
        """Validate, compress and upload a receipt, returning its public URL.

        Raises:
            ValidationError: the file was rejected; nothing was sent.
            UploadError: the upload failed; one of its subclasses says why.
        """
        result = validate_receipt(content_type, data)
        if not result:
            raise ValidationError(result.error)

        if content_type != PDF_TYPE:
            data = compress_image(data, content_type, self.max_width, self.quality)

        timestamp = int(time.time() * 1000)
        name = (
            f"receipt_{participant_id}_{month}_{timestamp}."
            f"{file_extension(filename)}"
        )
        blob = self.bucket.blob(f"{RECEIPTS_PREFIX}{name}")
        blob.metadata = {
            "participantId": participant_id,
            "month": month,
            "originalName": filename or name,
            "uploadDate": utcnow().isoformat(),
        }
        try:
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
        except Exception as e:
            current_app.logger.error(f"Error uploading receipt {name}: {e}")
            raise classify_upload_error(e) from e

        current_app.logger.info(f"Uploaded receipt {name} ({len(data)} bytes)")
        return blob.public_url

    def delete(self, url_or_path: str) -> bool:
        """Delete a receipt file. A missing file is not an error."""
        path = blob_path(url_or_path)
        try:
            self.bucket.blob(path).delete()
        except google_exceptions.NotFound:
            current_app.logger.info(f"Receipt file already deleted: {path}")
            return False
        except Exception as e:
            current_app.logger.error(f"Error deleting receipt file {path}: {e}")
            return False
        return True
