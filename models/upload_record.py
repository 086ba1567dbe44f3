from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

KIND_UPLOAD = "upload"
KIND_CAREER = "career"


@dataclass
class UploadRecord:
    """In-memory representation of a row in the UPLOAD table.

    Attributes:
        id: Primary key (None for new records).
        filename: Name of the stored file under the uploads directory.
        stored_path: Absolute path of the stored file.
        mime_type: MIME type of the stored bytes.
        thread_id: Remote thread the file belongs to, if known.
        remote_file_id: Id returned by the remote file store, if forwarded.
        kind: `upload` for photos, `career` for generated portraits.
        created_at: Unix timestamp (seconds, fractional) when the row was inserted.
    """

    id: Optional[int]
    filename: str
    stored_path: str
    mime_type: str = "image/png"
    thread_id: Optional[str] = None
    remote_file_id: Optional[str] = None
    kind: str = KIND_UPLOAD
    created_at: Optional[float] = None
