"""Run, tool invocation, and tool result models for the run-completion loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

QUEUED = "queued"
IN_PROGRESS = "in_progress"
REQUIRES_ACTION = "requires_action"
COMPLETED = "completed"
FAILED = "failed"
CANCELLED = "cancelled"
EXPIRED = "expired"

IN_FLIGHT_STATUSES = frozenset({QUEUED, IN_PROGRESS})


@dataclass
class ToolInvocation:
    """A function call requested by the assistant while a run is paused.

    Attributes:
        id: Tool call id, unique within one pause event.
        name: Requested function name.
        arguments: Raw JSON-encoded arguments as sent by the assistant.
    """

    id: str
    name: str
    arguments: str = "{}"


@dataclass
class RunSnapshot:
    """Point-in-time view of a remote run."""

    run_id: str
    status: str
    tool_invocations: List[ToolInvocation] = field(default_factory=list)
    last_error: Optional[Dict[str, Any]] = None

    @property
    def in_flight(self) -> bool:
        return self.status in IN_FLIGHT_STATUSES


@dataclass(frozen=True)
class ToolResult:
    """Tagged tool result: either a success payload or an error reason."""

    ok: bool
    message: str
    prefixed: bool = True

    @classmethod
    def success(cls, message: str) -> "ToolResult":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, reason: str, *, prefixed: bool = True) -> "ToolResult":
        return cls(ok=False, message=reason, prefixed=prefixed)

    def to_text(self) -> str:
        """Serialize to the plain-text convention expected by the assistant.

        Failures carry an `ERROR: ` prefix unless built with `prefixed=False`.
        """
        if self.ok or not self.prefixed:
            return self.message
        return f"ERROR: {self.message}"


@dataclass(frozen=True)
class ToolOutput:
    """Result for one tool invocation, keyed by the invocation id."""

    tool_call_id: str
    result: ToolResult

    def to_payload(self) -> Dict[str, str]:
        return {"tool_call_id": self.tool_call_id, "output": self.result.to_text()}


@dataclass
class CareerVisualizationMemo:
    """One-slot cache of the career image already generated within a run."""

    description: Optional[str] = None

    @property
    def populated(self) -> bool:
        return self.description is not None


class TurnOutcome(str, Enum):
    """How a single orchestrated turn ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CAPPED_OUT = "capped_out"
    TRANSPORT_ERROR = "transport_error"


@dataclass
class TurnResult:
    """Final text for a turn plus the outcome that produced it."""

    outcome: TurnOutcome
    text: str
    run_id: Optional[str] = None
    iterations: int = 0

    @property
    def succeeded(self) -> bool:
        return self.outcome is TurnOutcome.COMPLETED
