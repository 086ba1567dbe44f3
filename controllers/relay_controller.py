"""Pass-through controllers for the Assistants relay endpoints.

Each function forwards to the shared `AssistantsClient` or image services
on `app.state` and translates relay errors into HTTP errors without
leaking upstream details to the browser.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from services.assistant.assistants_client import AssistantsClient
from utils.errors import ImageServiceError, TransportError, UploadValidationError
from utils.media_validation import validate_image_upload


def _assistants(request: Request) -> AssistantsClient:
    assistants = getattr(request.app.state, "assistants", None)
    if assistants is None:
        raise HTTPException(status_code=500, detail="Assistants client not initialized.")
    return assistants


def _bad_gateway(detail: str) -> HTTPException:
    return HTTPException(status_code=502, detail=detail)


async def create_thread(request: Request) -> Dict[str, Any]:
    """Create a remote thread."""
    try:
        return await _assistants(request).create_thread()
    except TransportError as exc:
        raise _bad_gateway("Failed to create thread") from exc


async def add_message(
    request: Request,
    thread_id: str,
    content: str,
    attachments: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Append a user message (optionally with attachments) to a thread."""
    try:
        return await _assistants(request).append_message(thread_id, content, attachments)
    except TransportError as exc:
        raise _bad_gateway("Failed to add message to thread") from exc


async def list_messages(request: Request, thread_id: str) -> Dict[str, Any]:
    """Return a thread's messages, newest first."""
    try:
        return await _assistants(request).list_messages(thread_id)
    except TransportError as exc:
        raise _bad_gateway("Failed to get messages") from exc


async def start_run(request: Request, thread_id: str) -> Dict[str, Any]:
    """Start an assistant run with the static tool set."""
    try:
        return await _assistants(request).start_run(thread_id)
    except TransportError as exc:
        raise _bad_gateway("Failed to create run") from exc


async def get_run(request: Request, thread_id: str, run_id: str) -> Dict[str, Any]:
    """Return the current run object."""
    try:
        return await _assistants(request).get_run(thread_id, run_id)
    except TransportError as exc:
        raise _bad_gateway("Failed to get run status") from exc


async def submit_tool_outputs(
    request: Request,
    thread_id: str,
    run_id: str,
    tool_outputs: List[Dict[str, str]],
) -> Dict[str, Any]:
    """Submit the complete set of tool outputs for a paused run."""
    try:
        return await _assistants(request).submit_tool_outputs(thread_id, run_id, tool_outputs)
    except TransportError as exc:
        raise _bad_gateway("Failed to submit tool outputs") from exc


async def generate_image(request: Request, prompt: str) -> Dict[str, str]:
    """Generate an image and return it as a data URL."""
    generator = request.app.state.image_generator
    try:
        image = await generator.generate(prompt)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ImageServiceError as exc:
        raise HTTPException(status_code=502, detail="Failed to generate image") from exc
    return {"type": "base64", "data": image.data_url}


async def generate_career_visualization(
    request: Request,
    career_field: str,
    specific_role: Optional[str],
    thread_id: Optional[str],
):
    """Create a career image for the thread's latest uploaded photo."""
    visualizer = request.app.state.career_visualizer
    try:
        visualization = await visualizer.visualize(career_field, specific_role, thread_id=thread_id)
    except ImageServiceError as exc:
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "OpenAI image editing failed",
                "message": exc.message,
            },
        )
    return visualization.to_dict()


async def upload_file(request: Request, file: UploadFile, thread_id: Optional[str]) -> Dict[str, Any]:
    """Store an uploaded image locally and forward it to the remote file store."""
    settings = request.app.state.settings
    data = await file.read()
    filename = file.filename or "upload.png"
    mime_type = file.content_type or "image/png"
    try:
        validate_image_upload(filename, mime_type, len(data), settings.max_upload_bytes)
    except UploadValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    image_store = request.app.state.image_store
    record = await image_store.save(data, mime_type, thread_id=thread_id, prefix="original")
    try:
        remote = await _assistants(request).upload_file(data, filename, mime_type)
    except TransportError as exc:
        await image_store.discard(record)
        raise _bad_gateway("Failed to upload file") from exc

    if remote.get("id"):
        await image_store.upload_dal.set_remote_file_id(record.id, remote["id"])
    return remote


async def list_saved_images(request: Request) -> Dict[str, Any]:
    """List every image stored under the uploads directory."""
    settings = request.app.state.settings
    entries = await request.app.state.image_store.list_saved_images()
    return {
        "images": [
            {"filename": entry["filename"], "url": settings.upload_url(entry["filename"]), "created": entry["created"]}
            for entry in entries
        ]
    }
