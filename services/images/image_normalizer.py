"""Image normalizer for the image edit endpoint.

Provides a small OOP wrapper around Pillow that converts an uploaded photo
(any format Pillow can open) into PNG bytes that fit within the configured
`max_size`, which is what the image edit API expects as its source image.

Public class: `ImageNormalizer`

Example:
    normalizer = ImageNormalizer(max_size=(1024, 1024))
    png_bytes = normalizer.to_png(raw_bytes)
"""
from __future__ import annotations

import io
from typing import Tuple

from PIL import Image


class ImageNormalizer:
    """Convert image bytes into bounded PNG bytes.

    Args:
        max_size: Maximum width and height of the output. Defaults to (1024, 1024).
    """

    def __init__(self, max_size: Tuple[int, int] = (1024, 1024)):
        self.max_size = max_size

    def to_png(self, data: bytes) -> bytes:
        """Return PNG bytes for `data`, downscaled to fit `max_size`.

        Args:
            data: Raw image bytes (PNG, JPEG, WEBP, ...).

        Returns:
            PNG-encoded bytes. Alpha is preserved.

        Raises:
            ValueError: If the bytes are empty or cannot be opened as an image.
        """
        if not data:
            raise ValueError("Image bytes are required")

        try:
            src = Image.open(io.BytesIO(data))
            src.load()
        except Exception as exc:
            raise ValueError("Decoded bytes are not a supported image format") from exc

        if src.mode not in ("RGBA", "RGB"):
            src = src.convert("RGBA")

        src.thumbnail(self.max_size, Image.LANCZOS)

        out_io = io.BytesIO()
        src.save(out_io, format="PNG", optimize=True)
        return out_io.getvalue()
