"""Helpers for saving uploaded and generated images and indexing them.

This service writes image bytes under the configured uploads directory
(served statically at `/uploads`), inserts a row into the `UPLOAD` table,
and answers the "most recent image for this thread" lookup used by the
career visualization tool.
"""

from __future__ import annotations

import asyncio
import os
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles

from dal.upload_dal import UploadDAL
from models.upload_record import KIND_UPLOAD, UploadRecord

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif")


def extension_for_mime(mime_type: Optional[str]) -> str:
    """Return a file extension for an image MIME type, defaulting to png."""
    ext = "png"
    if mime_type and "/" in mime_type:
        candidate = mime_type.split(";", 1)[0].split("/")[-1].strip().lower()
        if candidate in ("jpeg", "jpg", "png", "webp", "gif"):
            ext = "jpg" if candidate == "jpeg" else candidate
    return ext


class ImageStore:
    """Persist image bytes on disk and index them in SQLite."""

    def __init__(self, uploads_dir: str | Path, upload_dal: UploadDAL) -> None:
        self.uploads_dir = Path(uploads_dir)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.upload_dal = upload_dal

    async def save(
        self,
        image_bytes: bytes,
        mime_type: str,
        *,
        kind: str = KIND_UPLOAD,
        thread_id: Optional[str] = None,
        prefix: Optional[str] = None,
    ) -> UploadRecord:
        """Save image bytes to disk and insert the matching UPLOAD row.

        Args:
            image_bytes: Raw bytes of the image.
            mime_type: MIME type of the bytes (e.g., image/png).
            kind: Record kind (`upload` or `career`).
            thread_id: Remote thread the image belongs to, if known.
            prefix: Optional filename prefix; defaults to `kind`.

        Returns:
            The stored `UploadRecord` with its database id set.

        Raises:
            ValueError: If image bytes are missing.
        """
        if not image_bytes:
            raise ValueError("Image bytes are required for saving.")

        filename = f"{prefix or kind}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}.{extension_for_mime(mime_type)}"
        path = self.uploads_dir / filename

        async with aiofiles.open(path, "wb") as fh:
            await fh.write(image_bytes)

        record = UploadRecord(
            id=None,
            filename=filename,
            stored_path=str(path),
            mime_type=mime_type,
            thread_id=thread_id,
            kind=kind,
            created_at=time.time(),
        )
        record.id = await self.upload_dal.create_upload(record)
        return record

    async def read(self, record: UploadRecord) -> bytes:
        """Return the stored bytes for a record."""

        async with aiofiles.open(record.stored_path, "rb") as fh:
            return await fh.read()

    async def discard(self, record: UploadRecord) -> None:
        """Remove a stored image and its UPLOAD row."""
        if record.id is not None:
            await self.upload_dal.delete_upload(record.id)
        await asyncio.to_thread(Path(record.stored_path).unlink, missing_ok=True)

    async def find_source_image(self, thread_id: Optional[str]) -> Optional[UploadRecord]:
        """Return the newest upload for `thread_id`, else the newest upload overall.

        The thread-scoped row always wins so concurrent uploads in other
        threads cannot shadow this thread's photo.
        """
        if thread_id:
            record = await self.upload_dal.latest_for_thread(thread_id)
            if record is not None:
                return record
        return await self.upload_dal.latest_any()

    async def list_saved_images(self) -> List[Dict[str, Any]]:
        """List image files in the uploads directory with creation times."""

        def _scan(directory: Path) -> List[Dict[str, Any]]:
            entries = []
            for name in sorted(os.listdir(directory)):
                if not name.lower().endswith(IMAGE_EXTENSIONS):
                    continue
                stat = (directory / name).stat()
                entries.append({"filename": name, "created": stat.st_mtime})
            return entries

        return await asyncio.to_thread(_scan, self.uploads_dir)
