"""Tool executor adapter.

``ToolExecutor.execute`` is the boundary between the loop and the tool
backend: whatever happens underneath, the loop gets a ToolOutcome back.
Backends subclass ToolExecutor and implement ``discover`` and ``call_tool``.
"""

import logging
import time
from typing import Optional

from pydantic import BaseModel, ValidationError

from tool_loop.exceptions import ToolExecutionError, ToolNotFound
from tool_loop.execution import ToolCall, ToolOutcome
from tool_loop.tools import ToolCallResponse, ToolDescriptor

logger = logging.getLogger(__name__)


class ToolExecutor:
    def __init__(self, tools: Optional[list[ToolDescriptor]] = None):
        self.tools = list(tools or [])

    @property
    def tools(self) -> list[ToolDescriptor]:
        return self._tools

    @tools.setter
    def tools(self, tools: list[ToolDescriptor]) -> None:
        self._tools = tools
        self._input_models = {tool.name: _build_input_model(tool) for tool in tools}

    async def discover(self) -> list[ToolDescriptor]:
        """Fetch the backend's tool list and remember it."""
        raise NotImplementedError

    async def call_tool(self, name: str, arguments: dict) -> ToolCallResponse:
        """Run one tool on the backend. May raise; ``execute`` converts errors."""
        raise NotImplementedError

    def find_tool(self, name: str) -> ToolDescriptor:
        for tool in self.tools:
            if tool.name == name:
                return tool
        raise ToolNotFound(f"Tool '{name}' not found")

    async def execute(self, call: ToolCall) -> ToolOutcome:
        """Execute a parsed tool call and normalize the result. Never raises."""
        logger.info(f"Executing tool {call.name} (id={call.id}) with {call.arguments}")
        start = time.monotonic()

        try:
            self._validate(call)
            response = await self.call_tool(call.name, call.arguments)
        except ValidationError as e:
            return self._failure(call, f"Validation error: {e}", start)
        except ToolNotFound as e:
            return self._failure(call, f"Error: {e}", start)
        except ToolExecutionError as e:
            return self._failure(call, f"Tool error: {e}", start)
        except Exception as e:
            return self._failure(call, f"Error: {e}", start)

        content = response.text()
        if not content and response.error:
            content = response.error
        elapsed_ms = response.execution_time_ms or _elapsed_ms(start)

        if response.is_error:
            logger.warning(f"Tool {call.name} reported an error: {content[:200]}")
        else:
            logger.info(
                f"Tool {call.name} succeeded in {elapsed_ms}ms "
                f"({len(content)} chars): {content[:150]}"
            )
        return ToolOutcome(content=content, is_error=response.is_error, execution_time_ms=elapsed_ms)

    def _validate(self, call: ToolCall) -> None:
        # Without a discovered tool set, the backend is the only judge.
        if not self.tools:
            return
        tool = self.find_tool(call.name)
        input_model = self._input_models.get(tool.name)
        if input_model is not None:
            input_model(**call.arguments)

    def _failure(self, call: ToolCall, content: str, start: float) -> ToolOutcome:
        logger.warning(f"Tool {call.name} failed: {content}")
        return ToolOutcome(content=content, is_error=True, execution_time_ms=_elapsed_ms(start))


def _build_input_model(tool: ToolDescriptor) -> Optional[type[BaseModel]]:
    """Build the argument model for ``tool``, or None to leave validation to the backend."""
    try:
        return tool.input_model()
    except Exception as e:
        logger.warning(f"Tool {tool.name}: input schema not usable for validation ({e}), skipping")
        return None


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
