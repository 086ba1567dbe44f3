import json

import pytest
import respx
from httpx import Response

from services.assistant.assistants_client import AssistantsClient
from services.assistant.tool_schema import RUN_TOOLS
from tests.conftest import OPENAI_BASE_URL
from utils.errors import TransportError


@pytest.mark.asyncio
async def test_create_thread_returns_wire_dict(openai_client):
    assistants = AssistantsClient(openai_client, "asst_test")
    with respx.mock(base_url=OPENAI_BASE_URL, assert_all_called=True) as respx_mock:
        respx_mock.post("/threads").mock(
            return_value=Response(200, json={"id": "thread_abc", "object": "thread", "created_at": 1, "metadata": {}})
        )
        thread = await assistants.create_thread()

    assert thread["id"] == "thread_abc"
    assert thread["object"] == "thread"


@pytest.mark.asyncio
async def test_append_message_forwards_attachments(openai_client):
    assistants = AssistantsClient(openai_client, "asst_test")
    captured = {}

    def handler(request):
        captured["json"] = json.loads(request.content.decode("utf-8"))
        return Response(200, json={"id": "msg_1", "object": "thread.message", "role": "user", "content": []})

    attachments = [{"file_id": "file_1", "tools": [{"type": "file_search"}]}]
    with respx.mock(base_url=OPENAI_BASE_URL, assert_all_called=True) as respx_mock:
        respx_mock.post("/threads/thread_abc/messages").mock(side_effect=handler)
        message = await assistants.append_message("thread_abc", "hello", attachments)

    assert message["id"] == "msg_1"
    assert captured["json"] == {"role": "user", "content": "hello", "attachments": attachments}


@pytest.mark.asyncio
async def test_list_messages_requests_newest_first(openai_client):
    assistants = AssistantsClient(openai_client, "asst_test")
    body = {
        "object": "list",
        "data": [
            {
                "id": "msg_2",
                "object": "thread.message",
                "role": "assistant",
                "content": [{"type": "text", "text": {"value": "Hoi!", "annotations": []}}],
            }
        ],
        "has_more": False,
    }
    with respx.mock(base_url=OPENAI_BASE_URL, assert_all_called=True) as respx_mock:
        route = respx_mock.get("/threads/thread_abc/messages").mock(return_value=Response(200, json=body))
        messages = await assistants.list_messages("thread_abc")

    assert route.calls.last.request.url.params["order"] == "desc"
    assert messages["data"][0]["content"][0]["text"]["value"] == "Hoi!"
    assert messages["has_more"] is False


@pytest.mark.asyncio
async def test_start_run_sends_assistant_and_static_tools(openai_client):
    assistants = AssistantsClient(openai_client, "asst_test")
    captured = {}

    def handler(request):
        captured["json"] = json.loads(request.content.decode("utf-8"))
        return Response(200, json={"id": "run_1", "object": "thread.run", "status": "queued"})

    with respx.mock(base_url=OPENAI_BASE_URL, assert_all_called=True) as respx_mock:
        respx_mock.post("/threads/thread_abc/runs").mock(side_effect=handler)
        run = await assistants.start_run("thread_abc")

    assert run["id"] == "run_1"
    assert run["status"] == "queued"
    assert captured["json"]["assistant_id"] == "asst_test"
    assert captured["json"]["tools"] == RUN_TOOLS


@pytest.mark.asyncio
async def test_start_run_without_assistant_id_fails_before_any_request(openai_client):
    assistants = AssistantsClient(openai_client, None)

    with respx.mock(base_url=OPENAI_BASE_URL, assert_all_mocked=True) as respx_mock:
        with pytest.raises(TransportError):
            await assistants.start_run("thread_abc")
        assert respx_mock.calls.call_count == 0


@pytest.mark.asyncio
async def test_get_run_and_submit_tool_outputs(openai_client):
    assistants = AssistantsClient(openai_client, "asst_test")
    captured = {}

    def submit_handler(request):
        captured["json"] = json.loads(request.content.decode("utf-8"))
        return Response(200, json={"id": "run_1", "object": "thread.run", "status": "queued"})

    outputs = [{"tool_call_id": "call_1", "output": "Unknown function: x"}]
    with respx.mock(base_url=OPENAI_BASE_URL, assert_all_called=True) as respx_mock:
        respx_mock.get("/threads/thread_abc/runs/run_1").mock(
            return_value=Response(200, json={"id": "run_1", "object": "thread.run", "status": "in_progress"})
        )
        respx_mock.post("/threads/thread_abc/runs/run_1/submit_tool_outputs").mock(side_effect=submit_handler)
        run = await assistants.get_run("thread_abc", "run_1")
        submitted = await assistants.submit_tool_outputs("thread_abc", "run_1", outputs)

    assert run["status"] == "in_progress"
    assert submitted["status"] == "queued"
    assert captured["json"] == {"tool_outputs": outputs}


@pytest.mark.asyncio
async def test_upload_file_posts_multipart(openai_client):
    assistants = AssistantsClient(openai_client, "asst_test")
    captured = {}

    def handler(request):
        captured["content_type"] = request.headers["content-type"]
        return Response(
            200,
            json={
                "id": "file_1",
                "object": "file",
                "bytes": 3,
                "created_at": 1,
                "filename": "me.png",
                "purpose": "assistants",
                "status": "processed",
            },
        )

    with respx.mock(base_url=OPENAI_BASE_URL, assert_all_called=True) as respx_mock:
        respx_mock.post("/files").mock(side_effect=handler)
        remote = await assistants.upload_file(b"png", "me.png", "image/png")

    assert remote["id"] == "file_1"
    assert captured["content_type"].startswith("multipart/form-data")


@pytest.mark.asyncio
async def test_api_errors_become_transport_errors(openai_client):
    assistants = AssistantsClient(openai_client, "asst_test")
    with respx.mock(base_url=OPENAI_BASE_URL, assert_all_called=True) as respx_mock:
        respx_mock.get("/threads/thread_abc/runs/run_1").mock(
            return_value=Response(500, json={"error": {"message": "boom", "type": "server_error"}})
        )
        with pytest.raises(TransportError) as excinfo:
            await assistants.get_run("thread_abc", "run_1")

    assert excinfo.value.operation == "get_run"
    assert excinfo.value.status_code == 500
