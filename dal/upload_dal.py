"""Async Data Access Layer for the UPLOAD table.

Provides UploadDAL with the inserts and recency lookups used by the
upload relay and the career visualization executor.
"""

from __future__ import annotations

import time
from typing import Optional, Sequence

from models.upload_record import KIND_UPLOAD, UploadRecord
from utils.database_init import AsyncDatabaseInitializer


class UploadDAL:
    """Data access layer for UPLOAD records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "id",
        "filename",
        "stored_path",
        "mime_type",
        "thread_id",
        "remote_file_id",
        "kind",
        "created_at",
    )
    _COLUMN_LIST, _INSERT_COLUMNS = ", ".join(_COLUMNS), ", ".join(_COLUMNS[1:])

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_upload(self, record: UploadRecord) -> int:
        """Insert a new UPLOAD row and return the new id."""
        created_at = record.created_at or time.time()

        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"INSERT INTO UPLOAD ({self._INSERT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    record.filename,
                    record.stored_path,
                    record.mime_type,
                    record.thread_id,
                    record.remote_file_id,
                    record.kind,
                    created_at,
                ),
            )
            await conn.commit()
            return cur.lastrowid

    async def delete_upload(self, upload_id: int) -> bool:
        """Delete the UPLOAD row with `upload_id`. Returns True if a row was removed."""
        async with self._db.connection() as conn:
            cur = await conn.execute("DELETE FROM UPLOAD WHERE id = ?", (upload_id,))
            await conn.commit()
            return cur.rowcount > 0

    async def set_remote_file_id(self, upload_id: int, remote_file_id: str) -> bool:
        """Record the remote file id once the upload was forwarded."""
        async with self._db.connection() as conn:
            await conn.execute(
                "UPDATE UPLOAD SET remote_file_id = ? WHERE id = ?",
                (remote_file_id, upload_id),
            )
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)

    async def latest_for_thread(self, thread_id: str, kind: str = KIND_UPLOAD) -> Optional[UploadRecord]:
        """Return the most recent record of `kind` uploaded in `thread_id`."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM UPLOAD WHERE thread_id = ? AND kind = ? "
                "ORDER BY created_at DESC, id DESC LIMIT 1",
                (thread_id, kind),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def latest_any(self, kind: str = KIND_UPLOAD) -> Optional[UploadRecord]:
        """Return the most recent record of `kind` regardless of thread."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM UPLOAD WHERE kind = ? "
                "ORDER BY created_at DESC, id DESC LIMIT 1",
                (kind,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> UploadRecord:
        """Convert a DB row tuple into an UploadRecord."""
        return UploadRecord(
            id=row[0],
            filename=row[1],
            stored_path=row[2],
            mime_type=row[3],
            thread_id=row[4],
            remote_file_id=row[5],
            kind=row[6],
            created_at=row[7],
        )
