import inspect
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from openai import AsyncOpenAI

from dal.upload_dal import UploadDAL
from routes.chat_route import router as chat_router
from routes.relay_route import router as relay_router
from services.assistant.assistants_client import AssistantsClient
from services.assistant.run_orchestrator import RunOrchestrator
from services.assistant.run_poller import RunPoller
from services.assistant.tool_dispatcher import ToolDispatcher
from services.chat.conversation import ConversationService
from services.chat.session_store import SessionStore
from services.image_store import ImageStore
from services.images.career_visualizer import CareerVisualizationService
from services.images.image_generator import ImageGenerationService
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import RelaySettings, load_settings

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

LOGGER = logging.getLogger(__name__)


async def _close_client(client) -> None:
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception as exc:  # pylint: disable=broad-exception-caught
        LOGGER.warning("Error while closing OpenAI client: %s", exc)


def create_app(settings: Optional[RelaySettings] = None, *, openai_client: Optional[AsyncOpenAI] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    `settings` defaults to the environment; `openai_client` may be injected
    (tests point it at a mocked base URL). Without an injected client an
    OpenAI API key is required at startup.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan manager to initialize:
          - the SQLite upload index (always new on startup, at database_dir/app.db)
          - the uploads directory served under /uploads
          - the OpenAI async client and the services built on it
        and attach them to `app.state`.
        """
        app.state.settings = settings

        if openai_client is not None:
            client = openai_client
        else:
            if not settings.openai_api_key:
                raise RuntimeError("OPENAI_API_KEY environment variable is not set")
            try:
                client = AsyncOpenAI(api_key=settings.openai_api_key)
            except Exception as exc:
                raise RuntimeError("Failed to initialize OpenAI Async client") from exc
        app.state.openai_client = client

        if not settings.assistant_id:
            LOGGER.warning("ASSISTANT_ID is not set; runs cannot be started until it is configured")

        # This will delete any existing DB at db_path and create a fresh one.
        db_initializer = AsyncDatabaseInitializer(settings.database_dir)
        await db_initializer.ensure_database()
        app.state.db_initializer = db_initializer

        Path(settings.uploads_dir).mkdir(parents=True, exist_ok=True)
        upload_dal = UploadDAL(db_initializer)
        image_store = ImageStore(settings.uploads_dir, upload_dal)
        app.state.upload_dal = upload_dal
        app.state.image_store = image_store

        assistants = AssistantsClient(client, settings.assistant_id)
        image_generator = ImageGenerationService(client, model=settings.image_model)
        career_visualizer = CareerVisualizationService(
            client,
            image_store,
            image_generator,
            edit_model=settings.image_edit_model,
            url_for=settings.upload_url,
        )
        dispatcher = ToolDispatcher(image_generator, career_visualizer)
        poller = RunPoller(
            assistants,
            interval=settings.poll_interval_seconds,
            max_attempts=settings.poll_max_attempts,
        )
        orchestrator = RunOrchestrator(
            assistants, poller, dispatcher, max_iterations=settings.max_tool_iterations
        )
        app.state.assistants = assistants
        app.state.image_generator = image_generator
        app.state.career_visualizer = career_visualizer
        app.state.orchestrator = orchestrator

        session_store = SessionStore()
        app.state.session_store = session_store
        app.state.conversation = ConversationService(
            session_store,
            assistants,
            orchestrator,
            image_store,
            max_upload_bytes=settings.max_upload_bytes,
        )
        LOGGER.info("Relay ready (assistant=%s, uploads=%s)", settings.assistant_id, settings.uploads_dir)

        try:
            yield
        finally:
            # Injected clients are owned by the caller.
            if openai_client is None:
                await _close_client(client)

    app = FastAPI(lifespan=lifespan)

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")
    # The directory is created during startup.
    app.mount("/uploads", StaticFiles(directory=settings.uploads_dir, check_dir=False), name="uploads")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the frontend index page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports which services are configured.
        """
        state = request.app.state
        return {
            "ok": True,
            "db_initialized": hasattr(state, "db_initializer"),
            "openai_available": getattr(state, "openai_client", None) is not None,
            "assistant_configured": bool(settings.assistant_id),
        }

    # Register application routers
    app.include_router(relay_router)
    app.include_router(chat_router)

    return app


app = create_app()
