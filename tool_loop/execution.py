import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional


def new_message_id() -> str:
    return f"msg-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: dict


@dataclass(frozen=True)
class ToolOutcome:
    """Normalized result of one tool execution attempt."""

    content: str
    is_error: bool
    execution_time_ms: int


@dataclass
class ToolExecution:
    tool_name: str
    arguments: dict
    status: str = "executing"  # "executing" | "success" | "error"
    result: Optional[str] = None
    error: Optional[str] = None
    execution_time_ms: Optional[int] = None

    def finish(self, outcome: ToolOutcome) -> None:
        """Move the record to its terminal state. Allowed exactly once."""
        if self.status != "executing":
            raise ValueError(
                f"Tool execution '{self.tool_name}' already finished ({self.status})"
            )
        self.execution_time_ms = outcome.execution_time_ms
        if outcome.is_error:
            self.status = "error"
            self.error = outcome.content
        else:
            self.status = "success"
            self.result = outcome.content


@dataclass(frozen=True)
class Message:
    role: str  # "system" | "user" | "assistant"
    content: str
    id: str = field(default_factory=new_message_id)
    timestamp: float = field(default_factory=time.time)
    tool_calls: Optional[tuple[ToolCall, ...]] = None
    tool_executions: Optional[tuple[ToolExecution, ...]] = None


@dataclass
class Execution:
    messages: list[Message] = field(default_factory=list)
    tool_executions: list[ToolExecution] = field(default_factory=list)
    iterations: int = 0
    # "requesting" | "inspecting" | "executing" | "done" | "aborted"
    state: str = "requesting"
    metadata: dict[str, Any] = field(default_factory=dict)
