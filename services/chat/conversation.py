"""Sequence user turns for a conversation session.

A turn records the user's message, lazily creates the remote thread,
appends the message, runs the orchestrator, and records the assistant's
replies (mid-run notices first, final text last) as rendered HTML.
Only one turn may be in flight per session.
"""

from __future__ import annotations

import base64
import html
import logging
from typing import Any, Dict, List, Optional

from models.run_models import TurnOutcome
from models.session_models import ConversationSession, SessionMessage, TurnReply
from models.upload_record import UploadRecord
from services.assistant.assistants_client import AssistantsClient
from services.assistant.prompts import TURN_APOLOGY, UPLOAD_TURN_TEXT
from services.assistant.run_orchestrator import RunOrchestrator
from services.chat.message_formatter import format_message, inline_image
from services.chat.session_store import SessionStore
from services.image_store import ImageStore
from utils.errors import ConversationBusyError, TransportError
from utils.media_validation import to_data_url, validate_image_upload

LOGGER = logging.getLogger(__name__)

UPLOAD_FAILED_TEXT = "Sorry, there was an error uploading your image. Please try again."


class ConversationService:
    """Run chat turns and image uploads against a session's thread."""

    def __init__(
        self,
        store: SessionStore,
        assistants: AssistantsClient,
        orchestrator: RunOrchestrator,
        image_store: ImageStore,
        max_upload_bytes: int = 20 * 1024 * 1024,
    ) -> None:
        self.store = store
        self.assistants = assistants
        self.orchestrator = orchestrator
        self.image_store = image_store
        self.max_upload_bytes = max_upload_bytes

    async def send_message(
        self,
        session_id: str,
        text: str,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> TurnReply:
        """Send one user message and return the assistant's replies.

        Raises:
            KeyError: If the session does not exist.
            ValueError: If the message is empty.
            ConversationBusyError: If a turn is already running for the session.
        """
        message = (text or "").strip()
        if not message:
            raise ValueError("Message text is required.")
        session = self._claim(session_id)
        async with session.turn_lock:
            self.store.add_message(session_id, "user", message, html=format_message(message))
            return await self._run_turn(session, message, attachments)

    async def upload_image(self, session_id: str, data: bytes, filename: str, mime_type: str) -> TurnReply:
        """Store a photo, forward it to the file store, and ask the assistant about it.

        Raises:
            KeyError: If the session does not exist.
            UploadValidationError: If the file is not an image or is too large.
            ConversationBusyError: If a turn is already running for the session.
        """
        validate_image_upload(filename, mime_type, len(data), self.max_upload_bytes)
        mime_type = mime_type or "image/png"
        session = self._claim(session_id)
        async with session.turn_lock:
            preview = to_data_url(base64.b64encode(data).decode("utf-8"), mime_type)
            self.store.add_message(
                session_id,
                "user",
                f"📷 Foto geüpload: {filename}",
                html=inline_image(preview, filename) + f"<p>📷 Foto geüpload: {html.escape(filename)}</p>",
            )
            record = None
            try:
                thread_id = await self._ensure_thread(session)
                record = await self.image_store.save(data, mime_type, thread_id=thread_id, prefix="original")
                remote = await self.assistants.upload_file(data, filename, mime_type)
                await self._link_remote_file(record, remote)
            except TransportError as exc:
                LOGGER.error("Image upload failed for session %s: %s", session_id, exc)
                # Unforwarded photos are never career sources
                if record is not None:
                    await self.image_store.discard(record)
                return self._reply(session, TurnOutcome.TRANSPORT_ERROR, [self._assistant(session, UPLOAD_FAILED_TEXT)])

            attachments = [{"file_id": remote["id"], "tools": [{"type": "file_search"}]}]
            return await self._run_turn(session, UPLOAD_TURN_TEXT, attachments)

    def _claim(self, session_id: str) -> ConversationSession:
        session = self.store.get(session_id)
        # No await between this check and acquiring the lock
        if session.busy:
            raise ConversationBusyError(f"A message is already being processed for session {session_id}")
        return session

    async def _ensure_thread(self, session: ConversationSession) -> str:
        if session.thread_id is None:
            thread = await self.assistants.create_thread()
            self.store.bind_thread(session.session_id, thread["id"])
            LOGGER.info("Created thread %s for session %s", thread["id"], session.session_id)
        return session.thread_id

    async def _link_remote_file(self, record: UploadRecord, remote: Dict[str, Any]) -> None:
        remote_id = remote.get("id")
        if not remote_id:
            raise TransportError("upload_file", f"no file id in response: {remote}")
        await self.image_store.upload_dal.set_remote_file_id(record.id, remote_id)

    async def _run_turn(
        self,
        session: ConversationSession,
        content: str,
        attachments: Optional[List[Dict[str, Any]]],
    ) -> TurnReply:
        replies: List[SessionMessage] = []

        async def notify(text: str) -> None:
            replies.append(self._assistant(session, text))

        try:
            thread_id = await self._ensure_thread(session)
            await self.assistants.append_message(thread_id, content, attachments)
        except TransportError as exc:
            LOGGER.error("Could not submit message for session %s: %s", session.session_id, exc)
            replies.append(self._assistant(session, TURN_APOLOGY))
            return self._reply(session, TurnOutcome.TRANSPORT_ERROR, replies)

        result = await self.orchestrator.run_turn(thread_id, notify)
        replies.append(self._assistant(session, result.text))
        return self._reply(session, result.outcome, replies)

    def _assistant(self, session: ConversationSession, text: str) -> SessionMessage:
        return self.store.add_message(session.session_id, "assistant", text, html=format_message(text))

    @staticmethod
    def _reply(session: ConversationSession, outcome: TurnOutcome, replies: List[SessionMessage]) -> TurnReply:
        return TurnReply(
            session_id=session.session_id,
            thread_id=session.thread_id,
            outcome=outcome.value,
            messages=replies,
        )
