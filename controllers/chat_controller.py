"""Conversation session helpers for the orchestrated chat endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import HTTPException, Request, UploadFile

from services.chat.conversation import ConversationService
from services.chat.session_store import SessionStore
from utils.errors import ConversationBusyError, UploadValidationError


def _conversation(request: Request) -> ConversationService:
	return request.app.state.conversation


async def start_session(request: Request) -> Dict[str, Any]:
	"""Create a new conversation session and return its id."""
	store: SessionStore = request.app.state.session_store
	session = store.create()
	return {"session_id": session.session_id, "thread_id": session.thread_id}


async def get_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Return the session's thread id and rendered history."""
	store: SessionStore = request.app.state.session_store
	try:
		session = store.get(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail="Session not found") from exc
	return {
		"session_id": session.session_id,
		"thread_id": session.thread_id,
		"busy": session.busy,
		"messages": [message.to_dict() for message in session.messages],
	}


async def send_message(request: Request, session_id: str, text: str) -> Dict[str, Any]:
	"""Run one chat turn and return the assistant replies."""
	try:
		reply = await _conversation(request).send_message(session_id, text)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail="Session not found") from exc
	except ConversationBusyError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	return reply.to_dict()


async def upload_image(request: Request, session_id: str, file: UploadFile) -> Dict[str, Any]:
	"""Upload a photo into the session and return the assistant's reaction."""
	data = await file.read()
	try:
		reply = await _conversation(request).upload_image(
			session_id, data, file.filename or "upload.png", file.content_type or ""
		)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail="Session not found") from exc
	except UploadValidationError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	except ConversationBusyError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	return reply.to_dict()
