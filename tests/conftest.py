from pathlib import Path

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from openai import AsyncOpenAI

from dal.upload_dal import UploadDAL
from main import create_app
from services.image_store import ImageStore
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import RelaySettings

OPENAI_BASE_URL = "http://openai.test/v1"


def make_settings(tmp_path: Path, **overrides) -> RelaySettings:
    settings = RelaySettings(
        openai_api_key="test-key",
        assistant_id="asst_test",
        database_dir=str(tmp_path / "database"),
        uploads_dir=str(tmp_path / "uploads"),
        public_base_url="",
        poll_interval_seconds=0,
        poll_max_attempts=120,
        max_tool_iterations=5,
        max_upload_mb=20,
    )
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


def make_openai_client() -> AsyncOpenAI:
    return AsyncOpenAI(api_key="test-key", base_url=OPENAI_BASE_URL, max_retries=0)


@pytest.fixture
async def openai_client():
    client = make_openai_client()
    try:
        yield client
    finally:
        await client.close()


@pytest.fixture
async def image_store(tmp_path: Path):
    db = AsyncDatabaseInitializer(tmp_path / "database")
    await db.ensure_database()
    return ImageStore(tmp_path / "uploads", UploadDAL(db))


@pytest.fixture
def app_factory(tmp_path: Path, openai_client: AsyncOpenAI):
    def _factory(**settings_overrides):
        settings = make_settings(tmp_path, **settings_overrides)
        return create_app(settings, openai_client=openai_client)

    return _factory


@pytest.fixture
async def client(app_factory):
    app = app_factory()
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as http_client:
            http_client.app = app  # type: ignore[attr-defined]
            yield http_client
