"""Resolve paused-run tool invocations to the image executors.

Every invocation yields exactly one `ToolOutput`: failures of a single tool
(bad arguments, image service errors, transport errors) become error
outputs instead of aborting the run.
"""

import logging
from typing import Awaitable, Callable, List, Optional

from models.run_models import CareerVisualizationMemo, ToolInvocation, ToolOutput, ToolResult
from services.assistant.prompts import (
    career_image_message,
    career_memo_text,
    future_self_instruction,
)
from services.assistant.tool_arguments import CareerVisualizationArgs, GenerateImageArgs, parse_arguments
from services.assistant.tool_schema import GENERATE_CAREER_VISUALIZATION, GENERATE_IMAGE
from services.images.career_visualizer import CareerVisualizationService
from services.images.image_generator import ImageGenerationService
from utils.errors import ImageServiceError, ToolValidationError, TransportError

LOGGER = logging.getLogger(__name__)

Notify = Callable[[str], Awaitable[None]]


class ToolDispatcher:
    """Execute the tools requested by a paused run."""

    def __init__(
        self,
        image_generator: ImageGenerationService,
        career_visualizer: CareerVisualizationService,
    ) -> None:
        self.image_generator = image_generator
        self.career_visualizer = career_visualizer

    async def dispatch_all(
        self,
        invocations: List[ToolInvocation],
        memo: CareerVisualizationMemo,
        *,
        thread_id: Optional[str] = None,
        notify: Optional[Notify] = None,
    ) -> List[ToolOutput]:
        """Dispatch every invocation of one pause event, in order.

        A later career call sees the memo written by an earlier one.
        """
        outputs = []
        for invocation in invocations:
            outputs.append(await self.dispatch(invocation, memo, thread_id=thread_id, notify=notify))
        return outputs

    async def dispatch(
        self,
        invocation: ToolInvocation,
        memo: CareerVisualizationMemo,
        *,
        thread_id: Optional[str] = None,
        notify: Optional[Notify] = None,
    ) -> ToolOutput:
        """Execute one invocation and return its output; never raises."""
        LOGGER.info("Processing function call: %s (%s)", invocation.name, invocation.id)
        try:
            if invocation.name == GENERATE_IMAGE:
                result = await self._generate_image(invocation)
            elif invocation.name == GENERATE_CAREER_VISUALIZATION:
                result = await self._generate_career_visualization(invocation, memo, thread_id, notify)
            else:
                LOGGER.warning("Unknown function call: %s", invocation.name)
                result = ToolResult.failure(f"Unknown function: {invocation.name}", prefixed=False)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.exception("Unexpected error while processing %s", invocation.name)
            result = ToolResult.failure(f"Failed to run {invocation.name} - {exc}")
        return ToolOutput(tool_call_id=invocation.id, result=result)

    async def _generate_image(self, invocation: ToolInvocation) -> ToolResult:
        try:
            args = parse_arguments(GenerateImageArgs, invocation.arguments)
            LOGGER.info("generate_image prompt: %s", args.prompt)
            image = await self.image_generator.generate(args.prompt)
        except (ToolValidationError, ImageServiceError, TransportError, ValueError) as exc:
            LOGGER.error("Error processing generate_image: %s", exc)
            return ToolResult.failure(f"Failed to generate image - {exc}")
        return ToolResult.success(
            f"TASK COMPLETED: Successfully generated image. Image data: {image.data_url}"
        )

    async def _generate_career_visualization(
        self,
        invocation: ToolInvocation,
        memo: CareerVisualizationMemo,
        thread_id: Optional[str],
        notify: Optional[Notify],
    ) -> ToolResult:
        if memo.populated:
            LOGGER.info("Career visualization already generated, using cached result")
            return ToolResult.success(f"SUCCESS: Career visualization already generated. {memo.description}")

        try:
            args = parse_arguments(CareerVisualizationArgs, invocation.arguments)
        except ToolValidationError as exc:
            LOGGER.error("Error processing generate_career_visualization: %s", exc)
            return ToolResult.failure(f"Failed to generate career visualization - {exc}")

        if args.userMessage and notify is not None:
            await notify(args.userMessage)

        try:
            visualization = await self.career_visualizer.visualize(
                args.careerField, args.specificRole, thread_id=thread_id
            )
        except ImageServiceError as exc:
            LOGGER.error("Career visualization failed: %s (%s)", exc.message, exc.detail)
            return ToolResult.failure(exc.message)
        except (TransportError, ValueError) as exc:
            LOGGER.error("Career visualization failed: %s", exc)
            return ToolResult.failure(f"Failed to generate career visualization - {exc}")

        memo.description = career_memo_text(args.careerField, args.specificRole, visualization.server_url)
        if notify is not None:
            await notify(career_image_message(args.subject, visualization.image_url))
        return ToolResult.success(future_self_instruction())
