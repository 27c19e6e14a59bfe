"""Checks run on a receipt file before anything is sent to storage.

Two checks run in order and the first failure wins:

1. the declared content type is allowed and the size is under its ceiling,
2. the bytes really are what they claim: images must decode and fall within
   the accepted pixel dimensions, PDFs must carry a ``%PDF`` header.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from korban.constants import (
    IMAGE_TYPES,
    MAX_IMAGE_BYTES,
    MAX_IMAGE_DIMENSION,
    MAX_PDF_BYTES,
    MIN_IMAGE_DIMENSION,
    PDF_TYPE,
)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a receipt check."""

    valid: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


VALID = ValidationResult(True)


def _invalid(message: str) -> ValidationResult:
    return ValidationResult(False, message)


def _too_large() -> ValidationResult:
    return _invalid(
        f"Image is too large. Maximum {MAX_IMAGE_DIMENSION}x"
        f"{MAX_IMAGE_DIMENSION} pixels."
    )


def validate_receipt_file(
    content_type: str | None, size: int, allow_pdf: bool = True
) -> ValidationResult:
    """Check the declared content type and size of a receipt."""
    allowed = IMAGE_TYPES + ((PDF_TYPE,) if allow_pdf else ())
    if content_type not in allowed:
        names = "JPEG, PNG, WebP or PDF" if allow_pdf else "JPEG, PNG or WebP"
        return _invalid(f"Unsupported file format. Use {names} only.")

    max_size = MAX_PDF_BYTES if content_type == PDF_TYPE else MAX_IMAGE_BYTES
    if size > max_size:
        return _invalid(
            f"File is too large. Maximum {max_size // (1024 * 1024)}MB."
        )
    return VALID


def validate_file_content(content_type: str | None, data: bytes) -> ValidationResult:
    """Check that the bytes decode as the declared kind of file."""
    if content_type == PDF_TYPE:
        if not data.startswith(b"%PDF"):
            return _invalid("The PDF file is invalid or corrupt.")
        return VALID

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            width, height = img.size
    except Image.DecompressionBombError:
        return _too_large()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        return _invalid("The image file is corrupt or invalid.")

    if width < MIN_IMAGE_DIMENSION or height < MIN_IMAGE_DIMENSION:
        return _invalid(
            f"Image is too small. Minimum {MIN_IMAGE_DIMENSION}x"
            f"{MIN_IMAGE_DIMENSION} pixels."
        )
    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        return _too_large()
    return VALID


def validate_receipt(
    content_type: str | None, data: bytes, allow_pdf: bool = True
) -> ValidationResult:
    """Run both checks, stopping at the first failure."""
    result = validate_receipt_file(content_type, len(data), allow_pdf)
    if not result:
        return result
    return validate_file_content(content_type, data)
