#!/usr/bin/env python3
"""Example of tool-loop with mocked model responses and in-memory tools.

Needs no inference server and no MCP server. The mock model mixes the two
text notations (a wrapped <tool_call> and a bare JSON call) and streams
its replies, so the run shows parsing, execution, result re-injection and
chunk callbacks end to end.

Run:
    python examples/mock_agent.py
"""

import os
import sys

# Ensure the project root is in the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tool_loop import (
    Agent,
    Message,
    Middleware,
    ModelAdaptor,
    ModelResponse,
    ToolCallResponse,
    ToolContent,
    ToolDescriptor,
    ToolExecutor,
    build_agent_request,
)
from tool_loop.tools import ToolAnnotations

PATH_SCHEMA = {
    "type": "object",
    "properties": {"path": {"type": "string", "description": "Absolute path"}},
    "required": ["path"],
}


class InMemoryFileSystem(ToolExecutor):
    """Tool backend over a dict of files."""

    FILES = {
        "/notes/todo.txt": "buy milk\nrenew passport",
        "/notes/ideas.md": "# Ideas\n- tool loop demo",
    }

    def __init__(self):
        read_only = ToolAnnotations(read_only_hint=True, idempotent_hint=True)
        super().__init__(
            [
                ToolDescriptor(name="list_directory", description="List a directory",
                               input_schema=PATH_SCHEMA, annotations=read_only),
                ToolDescriptor(name="read_file", description="Read a text file",
                               input_schema=PATH_SCHEMA, annotations=read_only),
            ]
        )

    async def call_tool(self, name: str, arguments: dict) -> ToolCallResponse:
        path = arguments["path"].rstrip("/")
        if name == "list_directory":
            entries = [p.rsplit("/", 1)[1] for p in self.FILES if p.rsplit("/", 1)[0] == path]
            text = "\n".join(sorted(entries))
        elif path in self.FILES:
            text = self.FILES[path]
        else:
            return ToolCallResponse(
                success=False,
                is_error=True,
                content=[ToolContent(type="text", text=f"No such file: {path}")],
            )
        return ToolCallResponse(content=[ToolContent(type="text", text=text)])


class MockModelAdaptor(ModelAdaptor):
    """Replays a scripted conversation, streaming each reply line by line."""

    def __init__(self):
        self.call_count = 0
        self.replies = [
            'I\'ll see what is in /notes first.\n'
            '<tool_call>{"name": "list_directory", "arguments": {"path": "/notes"}}</tool_call>',
            '{"id": "read-1", "name": "read_file", "arguments": {"path": "/notes/todo.txt"}}',
            "Your todo list has two items: buy milk and renew passport.",
        ]

    async def call(self, messages, tools, on_chunk=None, **kwargs) -> ModelResponse:
        text = self.replies[min(self.call_count, len(self.replies) - 1)]
        self.call_count += 1
        if on_chunk is not None:
            for line in text.splitlines(keepends=True):
                await on_chunk(line)
        return ModelResponse(message=Message(role="assistant", content=text))


class ConsoleTrace(Middleware):
    """Prints the run as it happens."""

    async def on_chunk(self, event):
        print(event.chunk, end="", flush=True)

    async def after_model_call(self, event):
        print()

    async def before_tool_call(self, event):
        print(f"  -> {event.tool_call.name}({event.tool_call.arguments})")

    async def after_tool_call(self, event):
        status = event.tool_execution.status
        print(f"  <- {status} in {event.outcome.execution_time_ms}ms")


def print_header(text: str, width: int = 70) -> None:
    print(f"\n{'=' * width}")
    print(f"  {text}")
    print(f"{'=' * width}\n")


def main() -> int:
    print_header("tool-loop example (mocked model, in-memory tools)")

    executor = InMemoryFileSystem()
    agent = Agent(model=MockModelAdaptor(), executor=executor, name="NotesAgent")
    request = build_agent_request(
        "What is on my todo list?", executor.tools, current_path="/notes"
    )

    response = agent.run(request, callbacks=ConsoleTrace())

    print_header("Execution Trace")
    for i, record in enumerate(response.message.tool_executions, 1):
        print(f"  {i}. {record.tool_name} {record.arguments} [{record.status}]")
        output = record.error if record.status == "error" else record.result
        print(f"     {output!r}")
    print(f"\nFinal answer: {response.message.content}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
