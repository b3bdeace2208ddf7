from typing import Any, Optional


class ToolLoopError(Exception):
    """Base exception for tool-loop errors."""


class MaxIterationsReached(ToolLoopError):
    """Raised when the tool loop hits max_iterations without a final answer.

    The partially built Execution is attached so callers can inspect the
    tool executions that did run before the budget ran out.
    """

    def __init__(
        self,
        message: str,
        execution: Optional[Any] = None,
        max_iterations: Optional[int] = None,
    ):
        super().__init__(message)
        self.execution = execution
        self.max_iterations = max_iterations


class InferenceError(ToolLoopError):
    """Raised when the inference backend fails for the whole invocation."""


class ToolNotFound(ToolLoopError):
    """Raised when the model calls a tool that doesn't exist."""


class ToolExecutionError(ToolLoopError):
    """Raised when a tool backend call fails (transport error, timeout)."""


class ConfigError(ToolLoopError):
    """Raised when configuration values cannot be resolved."""
