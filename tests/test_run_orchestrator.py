import io
import json

import pytest
import respx
from httpx import Response
from PIL import Image

from models.run_models import COMPLETED, EXPIRED, FAILED, IN_PROGRESS, TurnOutcome
from services.assistant.prompts import TURN_APOLOGY
from services.assistant.run_orchestrator import RunOrchestrator
from services.assistant.run_poller import RunPoller
from services.assistant.tool_dispatcher import ToolDispatcher
from services.images.career_visualizer import CareerVisualizationService
from services.images.image_generator import ImageGenerationService
from tests.conftest import OPENAI_BASE_URL
from tests.fakes import (
    FakeAssistantsClient,
    FakeCareerVisualizer,
    FakeImageGenerator,
    RecordingSleep,
    requires_action,
    run_status,
    tool_call,
)
from utils.errors import IterationCapExceeded, RemoteRunFailure, RunTimeoutError, TransportError


def make_orchestrator(assistants, generator=None, visualizer=None, max_attempts=120):
    poller = RunPoller(assistants, interval=1.0, max_attempts=max_attempts, sleep=RecordingSleep())
    dispatcher = ToolDispatcher(generator or FakeImageGenerator(), visualizer or FakeCareerVisualizer())
    return RunOrchestrator(assistants, poller, dispatcher, max_iterations=5)


class Notices:
    def __init__(self):
        self.messages = []

    async def __call__(self, text):
        self.messages.append(text)


@pytest.mark.asyncio
async def test_completed_run_returns_final_text_verbatim():
    assistants = FakeAssistantsClient(runs=[run_status(COMPLETED)], reply="Hallo daar!")
    orchestrator = make_orchestrator(assistants)

    result = await orchestrator.execute("thread_1")

    assert result.outcome is TurnOutcome.COMPLETED
    assert result.text == "Hallo daar!"
    assert result.iterations == 0
    assert assistants.calls == ["start_run", "get_run", "list_messages"]


@pytest.mark.asyncio
async def test_generate_image_round_trip_submits_one_success_output():
    assistants = FakeAssistantsClient(
        runs=[
            requires_action(tool_call("call_1", "generate_image", {"prompt": "a red bicycle"})),
            run_status(IN_PROGRESS),
            run_status(COMPLETED),
        ],
        reply="Generated image: data:image/png;base64,aW1hZ2U=",
    )
    generator = FakeImageGenerator(b64="aW1hZ2U=")
    orchestrator = make_orchestrator(assistants, generator=generator)

    result = await orchestrator.execute("thread_1")

    assert generator.prompts == ["a red bicycle"]
    assert len(assistants.submitted) == 1
    (outputs,) = assistants.submitted
    assert outputs == [
        {
            "tool_call_id": "call_1",
            "output": "TASK COMPLETED: Successfully generated image. Image data: data:image/png;base64,aW1hZ2U=",
        }
    ]
    assert result.iterations == 1
    assert "data:image/png;base64,aW1hZ2U=" in result.text


@pytest.mark.asyncio
async def test_every_invocation_of_a_pause_gets_an_output_in_one_submission():
    assistants = FakeAssistantsClient(
        runs=[
            requires_action(
                tool_call("call_1", "generate_image", {"prompt": "a cat"}),
                tool_call("call_2", "no_such_tool", {}),
                tool_call("call_3", "generate_image", {}),
            ),
            run_status(COMPLETED),
        ]
    )
    orchestrator = make_orchestrator(assistants)

    await orchestrator.execute("thread_1")

    (outputs,) = assistants.submitted
    assert [output["tool_call_id"] for output in outputs] == ["call_1", "call_2", "call_3"]
    assert outputs[1]["output"] == "Unknown function: no_such_tool"
    assert outputs[2]["output"].startswith("ERROR: ")


@pytest.mark.asyncio
async def test_sixth_tool_pause_caps_out_without_dispatching():
    pause = requires_action(tool_call("call_1", "generate_image", {"prompt": "again"}))
    assistants = FakeAssistantsClient(runs=[pause])
    generator = FakeImageGenerator()
    orchestrator = make_orchestrator(assistants, generator=generator)

    with pytest.raises(IterationCapExceeded) as excinfo:
        await orchestrator.execute("thread_1")

    assert excinfo.value.iterations == 5
    assert len(assistants.submitted) == 5
    assert len(generator.prompts) == 5


@pytest.mark.asyncio
async def test_fifth_pause_then_completion_succeeds():
    pause = requires_action(tool_call("call_1", "generate_image", {"prompt": "again"}))
    assistants = FakeAssistantsClient(runs=[pause] * 5 + [run_status(COMPLETED)])
    orchestrator = make_orchestrator(assistants)

    result = await orchestrator.execute("thread_1")

    assert result.outcome is TurnOutcome.COMPLETED
    assert result.iterations == 5


@pytest.mark.asyncio
async def test_failed_run_raises_remote_failure_with_status():
    assistants = FakeAssistantsClient(runs=[run_status(FAILED, last_error={"code": "server_error"})])
    orchestrator = make_orchestrator(assistants)

    with pytest.raises(RemoteRunFailure) as excinfo:
        await orchestrator.execute("thread_1")

    assert excinfo.value.status == FAILED
    assert excinfo.value.last_error == {"code": "server_error"}
    assert "list_messages" not in assistants.calls


@pytest.mark.asyncio
async def test_completed_run_without_text_is_a_failure():
    assistants = FakeAssistantsClient(runs=[run_status(COMPLETED)], reply=None)
    orchestrator = make_orchestrator(assistants)

    with pytest.raises(RemoteRunFailure):
        await orchestrator.execute("thread_1")


@pytest.mark.asyncio
async def test_timeout_propagates_from_execute():
    assistants = FakeAssistantsClient(runs=[run_status(IN_PROGRESS)])
    orchestrator = make_orchestrator(assistants, max_attempts=3)

    with pytest.raises(RunTimeoutError):
        await orchestrator.execute("thread_1")
    assert assistants.get_run_calls == 3


@pytest.mark.asyncio
async def test_submission_failure_fails_the_whole_run():
    assistants = FakeAssistantsClient(
        runs=[requires_action(tool_call("call_1", "generate_image", {"prompt": "a cat"})), run_status(COMPLETED)],
        fail_on={"submit_tool_outputs"},
    )
    generator = FakeImageGenerator()
    orchestrator = make_orchestrator(assistants, generator=generator)

    with pytest.raises(TransportError) as excinfo:
        await orchestrator.execute("thread_1")

    assert excinfo.value.operation == "submit_tool_outputs"
    assert generator.prompts == ["a cat"]
    assert assistants.calls == ["start_run", "get_run", "submit_tool_outputs"]


@pytest.mark.asyncio
async def test_run_turn_apologizes_when_submission_fails():
    assistants = FakeAssistantsClient(
        runs=[requires_action(tool_call("call_1", "generate_image", {"prompt": "a cat"})), run_status(COMPLETED)],
        fail_on={"submit_tool_outputs"},
    )
    orchestrator = make_orchestrator(assistants)

    result = await orchestrator.run_turn("thread_1")

    assert result.outcome is TurnOutcome.TRANSPORT_ERROR
    assert result.text == TURN_APOLOGY
    assert "list_messages" not in assistants.calls


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "runs, fail_on, outcome",
    [
        ([run_status(EXPIRED)], set(), TurnOutcome.FAILED),
        ([run_status(IN_PROGRESS)], set(), TurnOutcome.TIMED_OUT),
        ([requires_action(tool_call("c", "generate_image", {"prompt": "x"}))], set(), TurnOutcome.CAPPED_OUT),
        ([run_status(COMPLETED)], {"start_run"}, TurnOutcome.TRANSPORT_ERROR),
    ],
)
async def test_run_turn_maps_every_failure_to_the_apology(runs, fail_on, outcome):
    assistants = FakeAssistantsClient(runs=runs, fail_on=fail_on)
    orchestrator = make_orchestrator(assistants, max_attempts=3)

    result = await orchestrator.run_turn("thread_1")

    assert result.outcome is outcome
    assert result.text == TURN_APOLOGY
    assert not result.succeeded


def _photo_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (64, 48), (200, 150, 120)).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.mark.asyncio
async def test_career_tool_edits_uploaded_photo_once_per_run(openai_client, image_store):
    upload = await image_store.save(_photo_bytes(), "image/jpeg", thread_id="thread_1", prefix="original")
    career_call = tool_call("call_1", "generate_career_visualization", {"careerField": "techniek"})
    assistants = FakeAssistantsClient(
        runs=[
            requires_action(career_call),
            requires_action(tool_call("call_2", "generate_career_visualization", {"careerField": "techniek"})),
            run_status(COMPLETED),
        ],
        reply="Ik ben jouw 50-jarige zelf.",
    )
    generator = ImageGenerationService(openai_client)
    visualizer = CareerVisualizationService(
        openai_client, image_store, generator, url_for=lambda name: f"http://relay.test/uploads/{name}"
    )
    orchestrator = make_orchestrator(assistants, generator=generator, visualizer=visualizer)
    notices = Notices()

    with respx.mock(base_url=OPENAI_BASE_URL, assert_all_called=False) as respx_mock:
        edit_route = respx_mock.post("/images/edits").mock(
            return_value=Response(200, json={"created": 1, "data": [{"b64_json": "YWdlZA=="}]})
        )
        generate_route = respx_mock.post("/images/generations")
        result = await orchestrator.execute("thread_1", notices)

    assert result.text == "Ik ben jouw 50-jarige zelf."
    assert edit_route.call_count == 1
    assert generate_route.call_count == 0
    assert notices.messages == [
        "Hier is jouw toekomst als techniek! 👨‍💼👩‍💼\n\n[Your Career Future](data:image/png;base64,YWdlZA==)"
    ]

    first, second = assistants.submitted
    assert first[0]["output"].startswith("SUCCESS: Career visualization completed")
    assert second[0]["output"].startswith("SUCCESS: Career visualization already generated.")
    assert "Image URL: http://relay.test/uploads/aged_" in second[0]["output"]

    career_record = await image_store.upload_dal.latest_for_thread("thread_1", kind="career")
    assert career_record is not None
    assert career_record.id != upload.id


@pytest.mark.asyncio
async def test_memo_does_not_leak_between_runs():
    career_call = tool_call("call_1", "generate_career_visualization", {"careerField": "zorg"})
    visualizer = FakeCareerVisualizer()
    for _ in range(2):
        assistants = FakeAssistantsClient(runs=[requires_action(career_call), run_status(COMPLETED)])
        orchestrator = make_orchestrator(assistants, visualizer=visualizer)
        await orchestrator.execute("thread_1")
        (outputs,) = assistants.submitted
        assert json.dumps(outputs).count("already generated") == 0

    assert len(visualizer.calls) == 2
