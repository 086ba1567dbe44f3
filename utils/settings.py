"""Environment-driven configuration for the relay.

Values are read from the process environment (optionally populated from a
`.env` file by `python-dotenv`) into a `RelaySettings` model that is shared
through `app.state.settings`.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

BASE_DIR = Path(__file__).resolve().parent.parent


class RelaySettings(BaseModel):
    """Runtime configuration for the relay and the run-completion loop."""

    openai_api_key: Optional[str] = None
    assistant_id: Optional[str] = None
    database_dir: str = str(BASE_DIR / "database")
    uploads_dir: str = str(BASE_DIR / "uploads")
    public_base_url: str = ""
    image_model: str = "dall-e-3"
    image_edit_model: str = "gpt-image-1"
    poll_interval_seconds: float = Field(default=1.0, ge=0)
    poll_max_attempts: int = Field(default=120, ge=1)
    max_tool_iterations: int = Field(default=5, ge=0)
    max_upload_mb: int = Field(default=20, ge=0)

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    def upload_url(self, filename: str) -> str:
        """Return the public URL for a file stored under `uploads_dir`."""
        return f"{self.public_base_url.rstrip('/')}/uploads/{filename}"


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_settings() -> RelaySettings:
    """Build settings from the environment, loading `.env` first if present."""
    load_dotenv()

    overrides = {
        "openai_api_key": _env("OPENAI_API_KEY"),
        "assistant_id": _env("ASSISTANT_ID"),
        "database_dir": _env("DATABASE_DIR"),
        "uploads_dir": _env("UPLOADS_DIR"),
        "public_base_url": _env("PUBLIC_BASE_URL"),
        "image_model": _env("IMAGE_MODEL"),
        "image_edit_model": _env("IMAGE_EDIT_MODEL"),
        "poll_interval_seconds": _env("POLL_INTERVAL_SECONDS"),
        "poll_max_attempts": _env("POLL_MAX_ATTEMPTS"),
        "max_tool_iterations": _env("MAX_TOOL_ITERATIONS"),
        "max_upload_mb": _env("MAX_UPLOAD_MB"),
    }
    # Unset variables fall back to the model defaults.
    return RelaySettings(**{key: value for key, value in overrides.items() if value is not None})
