"""FastAPI routes that relay Assistants, image, and upload calls."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, File, HTTPException, Query, Request, UploadFile
from pydantic import BaseModel

from controllers import relay_controller
from services.assistant.tool_arguments import CareerField

router = APIRouter(prefix="/api", tags=["relay"])


class MessagePayload(BaseModel):
    content: str
    attachments: Optional[List[Dict[str, Any]]] = None


class ToolOutputItem(BaseModel):
    tool_call_id: str
    output: str


class ToolOutputsPayload(BaseModel):
    tool_outputs: List[ToolOutputItem]


class ImagePayload(BaseModel):
    prompt: str


class CareerVisualizationPayload(BaseModel):
    careerField: CareerField
    specificRole: Optional[str] = None
    userMessage: Optional[str] = None
    threadId: Optional[str] = None


@router.post("/threads")
async def create_thread_route(request: Request):
    try:
        return await relay_controller.create_thread(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to create thread") from exc


@router.post("/threads/{thread_id}/messages")
async def add_message_route(request: Request, thread_id: str, payload: MessagePayload):
    try:
        return await relay_controller.add_message(request, thread_id, payload.content, payload.attachments)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to add message to thread") from exc


@router.get("/threads/{thread_id}/messages")
async def list_messages_route(request: Request, thread_id: str):
    try:
        return await relay_controller.list_messages(request, thread_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to get messages") from exc


@router.post("/threads/{thread_id}/runs")
async def start_run_route(request: Request, thread_id: str):
    try:
        return await relay_controller.start_run(request, thread_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to create run") from exc


@router.get("/threads/{thread_id}/runs/{run_id}")
async def get_run_route(request: Request, thread_id: str, run_id: str):
    try:
        return await relay_controller.get_run(request, thread_id, run_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to get run status") from exc


@router.post("/threads/{thread_id}/runs/{run_id}/submit_tool_outputs")
async def submit_tool_outputs_route(request: Request, thread_id: str, run_id: str, payload: ToolOutputsPayload):
    """Submit every tool output of a pause event in one call."""
    outputs = [item.model_dump() for item in payload.tool_outputs]
    try:
        return await relay_controller.submit_tool_outputs(request, thread_id, run_id, outputs)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to submit tool outputs") from exc


@router.post("/generate-image")
async def generate_image_route(request: Request, payload: ImagePayload):
    """Generate an image from a prompt and return it as a base64 data URL."""
    try:
        return await relay_controller.generate_image(request, payload.prompt)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to generate image") from exc


@router.post("/generate-career-visualization")
async def generate_career_visualization_route(request: Request, payload: CareerVisualizationPayload):
    """Age the thread's most recent uploaded photo into the chosen career."""
    try:
        return await relay_controller.generate_career_visualization(
            request, payload.careerField, payload.specificRole, payload.threadId
        )
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to generate career visualization") from exc


@router.post("/upload-file")
async def upload_file_route(
    request: Request,
    file: UploadFile = File(...),
    thread_id: Optional[str] = Query(None, alias="threadId"),
):
    """Store an uploaded image and forward it to the remote file store."""
    try:
        return await relay_controller.upload_file(request, file, thread_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to upload file") from exc


@router.get("/saved-images")
async def saved_images_route(request: Request):
    try:
        return await relay_controller.list_saved_images(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to list images") from exc
