"""Utilities for parsing and serializing OpenAI Assistants payloads."""

from typing import Any, Dict, List, Optional

from models.run_models import RunSnapshot, ToolInvocation


def serialize_response(response: Any) -> Any:
    """Convert an SDK object into a plain, wire-shaped structure."""
    if isinstance(response, (dict, list)):
        return response
    # to_dict keeps API field names and omits fields the server did not send
    if hasattr(response, "to_dict"):
        return response.to_dict()
    if hasattr(response, "model_dump"):
        return response.model_dump()
    return str(response)


def parse_tool_invocations(run: Dict[str, Any]) -> List[ToolInvocation]:
    """Return the pending function calls of a paused run, in order."""
    required = run.get("required_action") or {}
    submit = required.get("submit_tool_outputs") or {}
    invocations = []
    for call in submit.get("tool_calls") or []:
        function = call.get("function") or {}
        invocations.append(
            ToolInvocation(
                id=call.get("id", ""),
                name=function.get("name", ""),
                arguments=function.get("arguments") or "{}",
            )
        )
    return invocations


def parse_run_snapshot(run: Dict[str, Any]) -> RunSnapshot:
    """Build a RunSnapshot from a serialized run object."""
    return RunSnapshot(
        run_id=run.get("id", ""),
        status=run.get("status", ""),
        tool_invocations=parse_tool_invocations(run),
        last_error=run.get("last_error"),
    )


def extract_message_text(message: Dict[str, Any]) -> Optional[str]:
    """Return the first text content of a serialized thread message."""
    for content in message.get("content") or []:
        if content.get("type") == "text":
            text = content.get("text") or {}
            return text.get("value", "")
    return None


def extract_latest_text(messages: Dict[str, Any]) -> Optional[str]:
    """Return the text of the newest message in a newest-first message list."""
    data = messages.get("data") or []
    if not data:
        return None
    return extract_message_text(data[0])
