"""Exception types shared by the relay, the run loop, and the tool executors."""

from typing import Any, Dict, Optional


class RelayError(Exception):
    """Base class for all relay errors."""


class TransportError(RelayError):
    """A remote call failed at the network or HTTP level."""

    def __init__(self, operation: str, detail: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation
        self.detail = detail
        self.status_code = status_code


class RemoteRunFailure(RelayError):
    """The remote run ended in a non-completed terminal status."""

    def __init__(self, status: str, last_error: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"Run failed with status: {status}")
        self.status = status
        self.last_error = last_error


class RunTimeoutError(RelayError):
    """The run stayed queued or in progress past the poll attempt cap."""

    def __init__(self, run_id: str, attempts: int) -> None:
        super().__init__(f"Run {run_id} still in flight after {attempts} attempts")
        self.run_id = run_id
        self.attempts = attempts


class IterationCapExceeded(RelayError):
    """The run kept requesting tool calls past the iteration cap."""

    def __init__(self, run_id: str, iterations: int) -> None:
        super().__init__(f"Run {run_id} exceeded {iterations} tool-call iterations")
        self.run_id = run_id
        self.iterations = iterations


class ToolValidationError(RelayError):
    """Tool arguments were missing, malformed, or out of range."""


class ImageServiceError(RelayError):
    """The image generation or edit service did not return an image."""

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class UploadValidationError(RelayError):
    """An uploaded file was rejected before it reached any remote service."""


class ConversationBusyError(RelayError):
    """A turn is already in flight for the conversation session."""
