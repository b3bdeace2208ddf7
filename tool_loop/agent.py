import asyncio
import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Optional

from tool_loop.exceptions import InferenceError, MaxIterationsReached
from tool_loop.execution import Execution, Message, ToolCall, ToolExecution, ToolOutcome
from tool_loop.executor import ToolExecutor
from tool_loop.hooks import (
    AfterIterationEventData,
    AfterModelCallEventData,
    AfterRunEventData,
    AfterToolCallEventData,
    BeforeIterationEventData,
    BeforeModelCallEventData,
    BeforeRunEventData,
    BeforeToolCallEventData,
    ChunkEventData,
    HookRegistry,
    OnToolErrorEventData,
)
from tool_loop.model import ChunkCallback, InferenceRequest, ModelAdaptor, ModelResponse
from tool_loop.notation import (
    decode_arguments,
    detect_tool_call,
    extract_tool_calls,
    render_tool_result,
    strip_tool_calls,
    synthesize_call_id,
)
from tool_loop.tools import ToolDescriptor

if TYPE_CHECKING:
    from tool_loop.hooks import Middleware

logger = logging.getLogger(__name__)

# Model round trips allowed per run before the loop gives up.
DEFAULT_MAX_ITERATIONS = 5

TOOL_USE_PLACEHOLDER = "(Using tools...)"


class Agent:
    """Runs the tool-calling loop for one model and one tool executor.

    Each run asks the model for a completion, executes any tool calls it
    asked for (native ones, else ones written into the text), feeds the
    results back as ``<tool_result>`` user messages, and repeats until the
    model answers without calling a tool. More than ``max_iterations``
    rounds raises MaxIterationsReached.
    """

    def __init__(
        self,
        model: ModelAdaptor,
        executor: ToolExecutor,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        tools: Optional[list[ToolDescriptor]] = None,
        name: str = "Agent",
        hooks: Optional[HookRegistry] = None,
        middlewares: Optional[list["Middleware"]] = None,
    ):
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")

        self.model = model
        self.executor = executor
        self.max_iterations = max_iterations
        # None means "whatever the executor discovered"; [] disables native tools.
        self.tools = tools
        self.name = name

        self.hooks = hooks if hooks is not None else HookRegistry()
        for middleware in middlewares or []:
            self.hooks.register_middleware(middleware)

    def hook(self, hook_name: str):
        """Decorator for registering hooks directly on agent.

        Usage:
            @agent.hook('after_tool_call')
            async def log_tool(event):
                print(f"Tool: {event.tool_call.name}")
        """
        return self.hooks.on(hook_name)

    def run(
        self, request: InferenceRequest, callbacks: Optional["Middleware"] = None
    ) -> ModelResponse:
        """Run the loop synchronously."""
        return asyncio.run(self.run_async(request, callbacks))

    async def run_async(
        self, request: InferenceRequest, callbacks: Optional["Middleware"] = None
    ) -> ModelResponse:
        """Run the loop until the model answers without calling tools.

        ``callbacks`` is a Middleware scoped to this run only.

        Returns:
            The final ModelResponse. Its message carries every ToolExecution
            of the run in ``tool_executions``.

        Raises:
            InferenceError: If the model backend fails.
            MaxIterationsReached: If the model still wants tools after
                ``max_iterations`` rounds.
        """
        hooks = self.hooks
        if callbacks is not None:
            hooks = self.hooks.copy()
            hooks.register_middleware(callbacks)

        start_time = time.time()
        tools = self.tools if self.tools is not None else list(self.executor.tools)

        await hooks.trigger("before_run", BeforeRunEventData(agent=self, request=request))

        execution = Execution(messages=list(request.messages))

        while True:
            iteration_start = time.time()
            iteration = execution.iterations + 1
            logger.info(f"[{self.name}] Iteration {iteration}/{self.max_iterations}")

            execution.state = "requesting"
            await hooks.trigger(
                "before_iteration",
                BeforeIterationEventData(execution=execution, iteration=iteration),
            )
            response = await self._request(execution, request, tools, hooks)

            execution.state = "inspecting"
            tool_calls = self._tool_calls_from(response)

            if not tool_calls:
                execution.iterations = iteration
                execution.state = "done"
                final_message = replace(
                    response.message,
                    tool_executions=tuple(execution.tool_executions),
                )
                execution.messages.append(final_message)
                response = replace(response, message=final_message)

                await hooks.trigger(
                    "after_iteration",
                    AfterIterationEventData(
                        execution=execution,
                        iteration=iteration,
                        elapsed_time_ms=(time.time() - iteration_start) * 1000,
                    ),
                )
                await hooks.trigger(
                    "after_run",
                    AfterRunEventData(
                        execution=execution,
                        response=response,
                        total_time_ms=(time.time() - start_time) * 1000,
                    ),
                )
                return response

            logger.info(
                f"[{self.name}] Model requested {len(tool_calls)} tool call(s): "
                f"{[c.name for c in tool_calls]}"
            )
            execution.state = "executing"
            results = []
            for index, tool_call in enumerate(tool_calls):
                results.append(
                    await self._execute(execution, tool_call, index, iteration, hooks)
                )

            assistant_msg = replace(
                response.message,
                content=strip_tool_calls(response.message.content) or TOOL_USE_PLACEHOLDER,
                tool_calls=tuple(tool_calls),
            )
            execution.messages.append(assistant_msg)
            execution.messages.extend(results)
            execution.iterations = iteration

            await hooks.trigger(
                "after_iteration",
                AfterIterationEventData(
                    execution=execution,
                    iteration=iteration,
                    elapsed_time_ms=(time.time() - iteration_start) * 1000,
                ),
            )

            if execution.iterations >= self.max_iterations:
                execution.state = "aborted"
                logger.error(
                    f"[{self.name}] Tool loop exceeded maximum iterations ({self.max_iterations})"
                )
                raise MaxIterationsReached(
                    f"Tool loop exceeded maximum iterations ({self.max_iterations})",
                    execution=execution,
                    max_iterations=self.max_iterations,
                )

    async def _request(
        self,
        execution: Execution,
        request: InferenceRequest,
        tools: list[ToolDescriptor],
        hooks: HookRegistry,
    ) -> ModelResponse:
        await hooks.trigger(
            "before_model_call",
            BeforeModelCallEventData(
                execution=execution, messages=list(execution.messages), tools=tools
            ),
        )

        # Only stream when someone is listening.
        on_chunk = None
        if hooks.has_handlers("on_chunk"):
            on_chunk = self._chunk_forwarder(execution, hooks)

        model_start = time.time()
        try:
            response = await self.model.call(
                messages=list(execution.messages),
                tools=tools,
                on_chunk=on_chunk,
                **request.params.as_kwargs(),
            )
        except Exception as e:
            execution.state = "aborted"
            raise InferenceError(f"Inference failed: {e}") from e
        model_time = (time.time() - model_start) * 1000

        await hooks.trigger(
            "after_model_call",
            AfterModelCallEventData(
                execution=execution,
                model_response=response,
                response_time_ms=model_time,
            ),
        )
        return response

    @staticmethod
    def _chunk_forwarder(execution: Execution, hooks: HookRegistry) -> ChunkCallback:
        async def forward(chunk: str) -> None:
            await hooks.trigger("on_chunk", ChunkEventData(execution=execution, chunk=chunk))

        return forward

    def _tool_calls_from(self, response: ModelResponse) -> list[ToolCall]:
        """Native tool calls win; the text is only parsed when there are none."""
        if response.native_tool_calls:
            calls: list[ToolCall] = []
            taken: set[str] = set()
            for native in response.native_tool_calls:
                arguments = decode_arguments(native.arguments)
                if arguments is None:
                    logger.warning(
                        f"Dropping native tool call '{native.name}': "
                        f"arguments are not a JSON object: {native.arguments!r}"
                    )
                    continue
                call_id = native.id
                if not call_id or call_id in taken:
                    call_id = synthesize_call_id(len(calls), taken)
                taken.add(call_id)
                calls.append(ToolCall(id=call_id, name=native.name, arguments=arguments))
            return calls

        content = response.message.content
        if not detect_tool_call(content):
            return []
        return extract_tool_calls(content)

    async def _execute(
        self,
        execution: Execution,
        tool_call: ToolCall,
        index: int,
        iteration: int,
        hooks: HookRegistry,
    ) -> Message:
        record = ToolExecution(tool_name=tool_call.name, arguments=tool_call.arguments)

        await hooks.trigger(
            "before_tool_call",
            BeforeToolCallEventData(
                execution=execution,
                tool_call=tool_call,
                tool_execution=record,
                tool_index=index,
                iteration=iteration,
            ),
        )

        tool_start = time.monotonic()
        try:
            outcome = await self.executor.execute(tool_call)
        except Exception as e:
            logger.exception(f"[{self.name}] Executor raised for tool {tool_call.name}")
            outcome = ToolOutcome(
                content=f"Error: {e}",
                is_error=True,
                execution_time_ms=int((time.monotonic() - tool_start) * 1000),
            )

        record.finish(outcome)

        if outcome.is_error:
            await hooks.trigger(
                "on_tool_error",
                OnToolErrorEventData(
                    execution=execution,
                    tool_call=tool_call,
                    tool_execution=record,
                    error_message=outcome.content,
                ),
            )

        await hooks.trigger(
            "after_tool_call",
            AfterToolCallEventData(
                execution=execution,
                tool_call=tool_call,
                tool_execution=record,
                outcome=outcome,
            ),
        )
        execution.tool_executions.append(record)

        return Message(
            role="user",
            content=render_tool_result(tool_call.name, outcome.content, outcome.is_error),
            id=f"tool-result-{int(time.time() * 1000)}-{tool_call.id}",
        )
