"""FastAPI routes for orchestrated chat sessions."""

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers.chat_controller import get_session, send_message, start_session, upload_image

router = APIRouter(prefix="/api/chat/sessions", tags=["chat"])


class ChatMessagePayload(BaseModel):
	text: str


@router.post("")
async def start_session_route(request: Request):
	try:
		return await start_session(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}")
async def get_session_route(request: Request, session_id: str):
	try:
		return await get_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/messages")
async def send_message_route(request: Request, session_id: str, payload: ChatMessagePayload):
	"""Send a message and wait for the assistant's complete reply."""
	try:
		return await send_message(request, session_id, payload.text)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail="Failed to process message") from exc


@router.post("/{session_id}/images")
async def upload_image_route(request: Request, session_id: str, file: UploadFile = File(...)):
	"""Upload a photo and wait for the assistant's reply about it."""
	try:
		return await upload_image(request, session_id, file)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail="Failed to process image") from exc
