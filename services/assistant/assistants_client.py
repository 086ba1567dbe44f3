"""Thread, run, and file operations against the OpenAI Assistants API.

Every method returns the wire-shaped JSON of the remote object as a plain
dict so the relay routes can pass it through unchanged and the run loop can
parse it without depending on SDK model classes. Any SDK error is raised as
`TransportError`.
"""

import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from services.assistant.response_utils import serialize_response
from services.assistant.tool_schema import RUN_TOOLS
from utils.errors import TransportError

LOGGER = logging.getLogger(__name__)


def _transport_error(operation: str, exc: openai.APIError) -> TransportError:
    status_code = getattr(exc, "status_code", None)
    return TransportError(operation, str(exc), status_code=status_code)


class AssistantsClient:
    """Thin async wrapper around `client.beta.threads` and `client.files`."""

    def __init__(self, client: AsyncOpenAI, assistant_id: Optional[str]) -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.assistant_id = assistant_id

    async def create_thread(self) -> Dict[str, Any]:
        """Create an empty thread."""
        try:
            thread = await self.client.beta.threads.create()
        except openai.APIError as exc:
            LOGGER.error("Thread creation error: %s", exc)
            raise _transport_error("create_thread", exc) from exc
        return serialize_response(thread)

    async def append_message(
        self,
        thread_id: str,
        content: str,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Add a user message to a thread, optionally with file attachments."""
        kwargs: Dict[str, Any] = {"role": "user", "content": content}
        if attachments:
            kwargs["attachments"] = attachments
        try:
            message = await self.client.beta.threads.messages.create(thread_id, **kwargs)
        except openai.APIError as exc:
            LOGGER.error("Message addition error: %s", exc)
            raise _transport_error("append_message", exc) from exc
        return serialize_response(message)

    async def list_messages(self, thread_id: str, limit: int = 20) -> Dict[str, Any]:
        """Return the thread's messages, newest first."""
        try:
            page = await self.client.beta.threads.messages.list(thread_id, order="desc", limit=limit)
        except openai.APIError as exc:
            LOGGER.error("Messages retrieval error: %s", exc)
            raise _transport_error("list_messages", exc) from exc
        return {
            "object": "list",
            "data": [serialize_response(message) for message in page.data],
            "has_more": bool(getattr(page, "has_more", False)),
        }

    async def start_run(self, thread_id: str, tools: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """Start a run of the configured assistant with the static tool set."""
        if not self.assistant_id:
            raise TransportError("start_run", "ASSISTANT_ID is not configured")
        try:
            run = await self.client.beta.threads.runs.create(
                thread_id,
                assistant_id=self.assistant_id,
                tools=tools if tools is not None else RUN_TOOLS,
            )
        except openai.APIError as exc:
            LOGGER.error("Run creation error: %s", exc)
            raise _transport_error("start_run", exc) from exc
        data = serialize_response(run)
        LOGGER.info("Assistant run created: %s (status %s)", data.get("id"), data.get("status"))
        return data

    async def get_run(self, thread_id: str, run_id: str) -> Dict[str, Any]:
        """Fetch the current state of a run."""
        try:
            run = await self.client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
        except openai.APIError as exc:
            LOGGER.error("Run status error: %s", exc)
            raise _transport_error("get_run", exc) from exc
        return serialize_response(run)

    async def submit_tool_outputs(
        self,
        thread_id: str,
        run_id: str,
        tool_outputs: List[Dict[str, str]],
    ) -> Dict[str, Any]:
        """Submit the full set of tool outputs for a paused run."""
        try:
            run = await self.client.beta.threads.runs.submit_tool_outputs(
                run_id,
                thread_id=thread_id,
                tool_outputs=tool_outputs,
            )
        except openai.APIError as exc:
            LOGGER.error("Tool outputs error: %s", exc)
            raise _transport_error("submit_tool_outputs", exc) from exc
        return serialize_response(run)

    async def upload_file(self, data: bytes, filename: str, mime_type: str) -> Dict[str, Any]:
        """Upload bytes to the remote file store for use as a message attachment."""
        try:
            remote = await self.client.files.create(file=(filename, data, mime_type), purpose="assistants")
        except openai.APIError as exc:
            LOGGER.error("File upload error: %s", exc)
            raise _transport_error("upload_file", exc) from exc
        result = serialize_response(remote)
        LOGGER.info("OpenAI file upload response: %s", result.get("id"))
        return result
