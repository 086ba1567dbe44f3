import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

LOGGER = logging.getLogger(__name__)

UPLOAD_SCHEMA = """
CREATE TABLE IF NOT EXISTS UPLOAD (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filename TEXT NOT NULL,
    stored_path TEXT NOT NULL,
    mime_type TEXT NOT NULL,
    thread_id TEXT,
    remote_file_id TEXT,
    kind TEXT NOT NULL DEFAULT 'upload',
    created_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_upload_thread_recent ON UPLOAD (thread_id, created_at);
"""


class AsyncDatabaseInitializer:
    """
    Own the SQLite file that indexes uploaded and generated images.

    - The database lives at <database_dir>/<db_name> (app.db by default);
      the directory is created if needed.
    - The first `ensure_database()` call on an instance discards any file
      left by a previous process and applies `UPLOAD_SCHEMA`. Later calls do
      nothing, which lets `connection()` call it unconditionally.
    """

    def __init__(self, database_dir: Path | str, db_name: str = "app.db") -> None:
        if database_dir is None or not str(database_dir).strip():
            raise RuntimeError("A database directory (DATABASE_DIR) is required.")

        self.db_dir = Path(database_dir).expanduser()
        if self.db_dir.exists() and not self.db_dir.is_dir():
            raise RuntimeError(f"Database path {self.db_dir} is a file, not a directory.")
        try:
            self.db_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RuntimeError(f"Cannot create database directory {self.db_dir}") from exc

        self.db_path = self.db_dir / db_name
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def ensure_database(self) -> None:
        """
        Create a fresh database with the UPLOAD table on first use.

        Uploads are tied to remote threads that do not outlive the process,
        so a stale file is removed rather than migrated.
        """
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            self._discard_stale_file()
            await self._apply_schema()
            self._initialized = True
            LOGGER.info("Upload index ready at %s", self.db_path)

    def _discard_stale_file(self) -> None:
        try:
            self.db_path.unlink(missing_ok=True)
        except OSError as exc:
            raise RuntimeError(f"Failed to delete existing database at {self.db_path}") from exc

    async def _apply_schema(self, attempts: int = 3) -> None:
        for attempt in range(1, attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.executescript(UPLOAD_SCHEMA)
                    await db.commit()
                return
            except FileNotFoundError:
                # Seen on some network filesystems right after unlink.
                if attempt >= attempts:
                    raise
                LOGGER.warning("Database file not ready (attempt %d/%d); retrying", attempt, attempts)
                await asyncio.sleep(0.1 * attempt)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection to the (initialized) database and close it afterwards."""
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
