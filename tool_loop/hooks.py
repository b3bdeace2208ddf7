"""Hook system for tool-loop.

Hooks observe the loop; they don't steer it. A handler that raises is
logged and skipped so a broken callback never aborts a conversation.

Architecture:
- HookRegistry is the CORE implementation
- Decorator (@hooks.on, @agent.hook) and Middleware are convenience wrappers
- Everything goes through HookRegistry
"""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class HookEvent(str, Enum):
    """Available hook points in a tool-loop run."""

    BEFORE_RUN = "before_run"
    AFTER_RUN = "after_run"

    BEFORE_ITERATION = "before_iteration"
    AFTER_ITERATION = "after_iteration"

    BEFORE_MODEL_CALL = "before_model_call"
    ON_CHUNK = "on_chunk"
    AFTER_MODEL_CALL = "after_model_call"

    BEFORE_TOOL_CALL = "before_tool_call"
    AFTER_TOOL_CALL = "after_tool_call"
    ON_TOOL_ERROR = "on_tool_error"


# ============================================================================
# Hook Event Data Classes
# ============================================================================


@dataclass
class BeforeRunEventData:
    """Called before the loop starts."""

    agent: Any  # Agent instance
    request: Any  # InferenceRequest
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class AfterRunEventData:
    """Called after the loop produced a final response."""

    execution: Any  # Execution instance
    response: Any  # ModelResponse carrying the execution trace
    total_time_ms: float
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class BeforeIterationEventData:
    execution: Any
    iteration: int


@dataclass
class AfterIterationEventData:
    execution: Any
    iteration: int
    elapsed_time_ms: float


@dataclass
class BeforeModelCallEventData:
    execution: Any
    messages: List[Any]  # List of Message objects
    tools: List[Any]  # List of ToolDescriptor objects


@dataclass
class ChunkEventData:
    """Called for each piece of streamed model text."""

    execution: Any
    chunk: str


@dataclass
class AfterModelCallEventData:
    execution: Any
    model_response: Any  # ModelResponse object
    response_time_ms: float


@dataclass
class BeforeToolCallEventData:
    """Called before a tool runs. ``tool_execution`` is still 'executing'."""

    execution: Any
    tool_call: Any  # ToolCall object
    tool_execution: Any  # ToolExecution object
    tool_index: int
    iteration: int


@dataclass
class AfterToolCallEventData:
    """Called after a tool ran, whether it succeeded or not."""

    execution: Any
    tool_call: Any
    tool_execution: Any
    outcome: Any  # ToolOutcome object


@dataclass
class OnToolErrorEventData:
    execution: Any
    tool_call: Any
    tool_execution: Any
    error_message: str


# ============================================================================
# Hook Registry
# ============================================================================


class HookRegistry:
    """Central registry for all hooks.

    Supports both decorator-style and direct registration.

    Usage:
        hooks = HookRegistry()

        @hooks.on('after_tool_call')
        async def log_tool(event):
            print(f"Tool: {event.tool_call.name}")

        # Or direct registration
        async def my_hook(event):
            pass
        hooks.register_handler('after_tool_call', my_hook)
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {
            event.value: [] for event in HookEvent
        }

    def on(self, hook_name: str):
        """Decorator for registering hook handlers.

        Args:
            hook_name: Name of the hook (e.g., 'after_tool_call')

        Returns:
            Decorator function
        """

        def decorator(func: Callable) -> Callable:
            self.register_handler(hook_name, func)
            return func

        return decorator

    def register_handler(self, hook_name: str, handler: Callable) -> None:
        """Register a hook handler.

        Raises:
            ValueError: If hook_name is not valid
        """
        if hook_name not in self._handlers:
            valid_hooks = [e.value for e in HookEvent]
            raise ValueError(
                f"Invalid hook name '{hook_name}'. Valid hooks: {valid_hooks}"
            )
        self._handlers[hook_name].append(handler)

    def register_middleware(self, middleware: "Middleware") -> None:
        """Register the coroutine hook methods a middleware overrides."""
        for event in HookEvent:
            handler = getattr(middleware, event.value, None)
            if handler is None or not inspect.iscoroutinefunction(handler):
                continue
            if getattr(type(middleware), event.value, None) is getattr(Middleware, event.value):
                continue
            self.register_handler(event.value, handler)

    async def trigger(self, hook_name: str, event_data: Any) -> None:
        """Run all handlers for a hook, in registration order."""
        for handler in self._handlers.get(hook_name, []):
            try:
                await handler(event_data)
            except Exception as e:
                logger.warning(f"Hook '{hook_name}' raised exception: {e}")

    def has_handlers(self, hook_name: str) -> bool:
        """Check if hook has any registered handlers."""
        return len(self._handlers.get(hook_name, [])) > 0

    def copy(self) -> "HookRegistry":
        """Return a registry with the same handlers that can be extended alone."""
        clone = HookRegistry()
        for hook_name, handlers in self._handlers.items():
            clone._handlers[hook_name] = list(handlers)
        return clone

    def clear(self) -> None:
        """Clear all handlers (useful for testing)."""
        for hook_name in self._handlers:
            self._handlers[hook_name] = []


# ============================================================================
# Middleware Base Class (Optional, for stateful handlers)
# ============================================================================


class Middleware:
    """Base class for middleware (stateful hook handlers).

    Override the hooks you want to handle. Only methods a subclass actually
    defines are registered, so the base class costs nothing per event.

    Usage:
        class ToolTrace(Middleware):
            async def after_tool_call(self, event):
                print(f"{event.tool_call.name}: {event.outcome.content}")

        agent = Agent(model=model, executor=executor, middlewares=[ToolTrace()])
    """

    async def before_run(self, event: BeforeRunEventData) -> None:
        pass

    async def after_run(self, event: AfterRunEventData) -> None:
        pass

    async def before_iteration(self, event: BeforeIterationEventData) -> None:
        pass

    async def after_iteration(self, event: AfterIterationEventData) -> None:
        pass

    async def before_model_call(self, event: BeforeModelCallEventData) -> None:
        pass

    async def on_chunk(self, event: ChunkEventData) -> None:
        pass

    async def after_model_call(self, event: AfterModelCallEventData) -> None:
        pass

    async def before_tool_call(self, event: BeforeToolCallEventData) -> None:
        pass

    async def after_tool_call(self, event: AfterToolCallEventData) -> None:
        pass

    async def on_tool_error(self, event: OnToolErrorEventData) -> None:
        pass
