"""Drive one assistant run from start to final text.

State machine:

    Submitted -> Polling -> (RequiresAction -> Polling)* ->
        Completed | Failed | TimedOut | CappedOut

`execute` raises a typed error for every non-completed ending; `run_turn`
turns those into a uniform apology for the user and logs the detail.
"""

import logging
from typing import Optional

from models.run_models import (
    COMPLETED,
    REQUIRES_ACTION,
    CareerVisualizationMemo,
    TurnOutcome,
    TurnResult,
)
from services.assistant.assistants_client import AssistantsClient
from services.assistant.prompts import TURN_APOLOGY
from services.assistant.response_utils import extract_latest_text
from services.assistant.run_poller import RunPoller
from services.assistant.tool_dispatcher import Notify, ToolDispatcher
from services.assistant.tool_schema import RUN_TOOLS
from utils.errors import (
    IterationCapExceeded,
    RemoteRunFailure,
    RunTimeoutError,
    TransportError,
)

LOGGER = logging.getLogger(__name__)

MAX_TOOL_ITERATIONS = 5


class RunOrchestrator:
    """Run the assistant on a thread, handling tool-call pauses."""

    def __init__(
        self,
        assistants: AssistantsClient,
        poller: RunPoller,
        dispatcher: ToolDispatcher,
        max_iterations: int = MAX_TOOL_ITERATIONS,
    ) -> None:
        self.assistants = assistants
        self.poller = poller
        self.dispatcher = dispatcher
        self.max_iterations = max_iterations

    async def execute(self, thread_id: str, notify: Optional[Notify] = None) -> TurnResult:
        """Start a run on `thread_id` and return the assistant's final text.

        Args:
            thread_id: Thread that already holds the user's message.
            notify: Optional callback for messages the user should see mid-run.

        Returns:
            A completed `TurnResult`.

        Raises:
            TransportError: If starting, polling, submitting, or reading messages fails.
            RunTimeoutError: If the poller's attempt cap is hit.
            IterationCapExceeded: If the run asks for tools more than `max_iterations` times.
            RemoteRunFailure: If the run ends failed, cancelled, expired, or with no reply.
        """
        LOGGER.info("Starting assistant run for thread: %s", thread_id)
        run = await self.assistants.start_run(thread_id, RUN_TOOLS)
        run_id = run.get("id")
        if not run_id:
            LOGGER.error("No run ID returned: %s", run)
            raise RemoteRunFailure(run.get("status") or "not_created", run.get("last_error"))

        # One memo per run; it is dropped when this call returns.
        memo = CareerVisualizationMemo()
        iteration = 0
        snapshot = await self.poller.poll(thread_id, run_id)

        while snapshot.status == REQUIRES_ACTION:
            if iteration >= self.max_iterations:
                raise IterationCapExceeded(run_id, iteration)
            iteration += 1
            LOGGER.info(
                "Assistant requires action (iteration %d) - %d function call(s)",
                iteration,
                len(snapshot.tool_invocations),
            )

            outputs = await self.dispatcher.dispatch_all(
                snapshot.tool_invocations, memo, thread_id=thread_id, notify=notify
            )
            LOGGER.info("Submitting tool outputs: %d outputs", len(outputs))
            await self.assistants.submit_tool_outputs(
                thread_id, run_id, [output.to_payload() for output in outputs]
            )
            snapshot = await self.poller.poll(thread_id, run_id)
            LOGGER.info("After tool submission - Status: %s", snapshot.status)

        if snapshot.status != COMPLETED:
            raise RemoteRunFailure(snapshot.status, snapshot.last_error)

        LOGGER.info("Assistant run %s completed successfully", run_id)
        text = extract_latest_text(await self.assistants.list_messages(thread_id))
        if text is None:
            raise RemoteRunFailure("completed_without_reply")
        return TurnResult(outcome=TurnOutcome.COMPLETED, text=text, run_id=run_id, iterations=iteration)

    async def run_turn(self, thread_id: str, notify: Optional[Notify] = None) -> TurnResult:
        """Like `execute`, but every failure becomes the generic apology."""
        try:
            return await self.execute(thread_id, notify)
        except RemoteRunFailure as exc:
            LOGGER.error("Run failed with status: %s; last error: %s", exc.status, exc.last_error)
            outcome = TurnOutcome.FAILED
        except RunTimeoutError as exc:
            LOGGER.error("Run timed out: %s", exc)
            outcome = TurnOutcome.TIMED_OUT
        except IterationCapExceeded as exc:
            LOGGER.error("Max iterations reached - possible infinite loop: %s", exc)
            outcome = TurnOutcome.CAPPED_OUT
        except TransportError as exc:
            LOGGER.error("Remote call failed during run: %s", exc)
            outcome = TurnOutcome.TRANSPORT_ERROR
        return TurnResult(outcome=outcome, text=TURN_APOLOGY)
