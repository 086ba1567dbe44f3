"""Validation helpers for uploaded and generated image content."""

from typing import Optional

from utils.errors import UploadValidationError

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp", ".gif")


def validate_image_upload(filename: Optional[str], content_type: Optional[str], size: int, max_bytes: int) -> None:
    """Reject uploads that are not images or exceed the size limit.

    The content type is authoritative when present; otherwise the filename
    extension must look like an image.
    """
    if size <= 0:
        raise UploadValidationError("Uploaded file is empty.")
    if content_type:
        content_type = content_type.lower().split(";", 1)[0].strip()
        if not content_type.startswith("image/"):
            raise UploadValidationError("Please select an image file.")
    elif not (filename or "").lower().endswith(IMAGE_SUFFIXES):
        raise UploadValidationError("Please select an image file.")
    if size > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise UploadValidationError(f"Image too large. Please select an image under {limit_mb}MB.")


def to_data_url(image_b64: str, mime_type: str = "image/png") -> str:
    """Wrap base64 image data in a data URL."""
    return f"data:{mime_type};base64,{image_b64}"
