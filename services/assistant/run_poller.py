"""Poll a remote run until it leaves the queued/in-progress states."""

import asyncio
import logging
from typing import Awaitable, Callable

from models.run_models import RunSnapshot
from services.assistant.assistants_client import AssistantsClient
from services.assistant.response_utils import parse_run_snapshot
from utils.errors import RunTimeoutError

LOGGER = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 1.0
MAX_POLL_ATTEMPTS = 120
PROGRESS_LOG_EVERY = 10


class RunPoller:
    """Wait for a run to reach an actionable or terminal status.

    Each attempt sleeps `interval` seconds and then fetches the run once.
    Polling stops on any status other than `queued` / `in_progress`. After
    `max_attempts` in-flight fetches a `RunTimeoutError` is raised before
    any further request is made. Transport errors are not retried here.
    """

    def __init__(
        self,
        assistants: AssistantsClient,
        interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.assistants = assistants
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def poll(self, thread_id: str, run_id: str) -> RunSnapshot:
        """Return the first snapshot whose status is no longer in flight.

        Raises:
            RunTimeoutError: If the attempt cap is reached while still in flight.
            TransportError: If a status fetch fails.
        """
        attempts = 0
        LOGGER.debug("Starting to poll run %s", run_id)
        while True:
            if attempts >= self.max_attempts:
                LOGGER.error("Request timeout after %d attempts for run %s", attempts, run_id)
                raise RunTimeoutError(run_id, attempts)

            await self._sleep(self.interval)
            snapshot = parse_run_snapshot(await self.assistants.get_run(thread_id, run_id))
            attempts += 1

            if attempts % PROGRESS_LOG_EVERY == 0:
                LOGGER.info(
                    "Still waiting... Status: %s, Attempt: %d/%d", snapshot.status, attempts, self.max_attempts
                )

            if not snapshot.in_flight:
                LOGGER.info("Run %s reached status %s after %d attempts", run_id, snapshot.status, attempts)
                return snapshot
