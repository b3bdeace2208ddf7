"""Tests for the tool executor boundary."""

import asyncio
import logging

import pytest

from tool_loop.exceptions import ToolExecutionError
from tool_loop.execution import ToolCall
from tool_loop.executor import ToolExecutor
from tool_loop.tools import ToolCallResponse, ToolContent, ToolDescriptor


READ_FILE = ToolDescriptor(
    name="read_file",
    description="Read a file",
    input_schema={
        "type": "object",
        "properties": {"path": {"type": "string"}},
        "required": ["path"],
    },
)


class ScriptedExecutor(ToolExecutor):
    """Executor whose backend returns (or raises) a scripted result."""

    def __init__(self, result=None, tools=None):
        super().__init__(tools if tools is not None else [READ_FILE])
        self.result = result
        self.calls = []

    async def call_tool(self, name, arguments):
        self.calls.append((name, arguments))
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


def _call(name="read_file", arguments=None):
    return ToolCall(id="c1", name=name, arguments=arguments if arguments is not None else {"path": "/etc/hosts"})


class TestExecute:
    async def test_success(self):
        executor = ScriptedExecutor(
            ToolCallResponse(content=[ToolContent(type="text", text="127.0.0.1 localhost")])
        )
        outcome = await executor.execute(_call())
        assert outcome.is_error is False
        assert outcome.content == "127.0.0.1 localhost"
        assert outcome.execution_time_ms >= 0
        assert executor.calls == [("read_file", {"path": "/etc/hosts"})]

    async def test_backend_reported_time_wins(self):
        executor = ScriptedExecutor(
            ToolCallResponse(content=[ToolContent(type="text", text="ok")], execution_time_ms=250)
        )
        outcome = await executor.execute(_call())
        assert outcome.execution_time_ms == 250

    async def test_backend_error_flag(self):
        executor = ScriptedExecutor(
            ToolCallResponse(
                success=False,
                is_error=True,
                content=[ToolContent(type="text", text="ENOENT: no such file")],
            )
        )
        outcome = await executor.execute(_call())
        assert outcome.is_error is True
        assert outcome.content == "ENOENT: no such file"

    async def test_error_field_used_when_no_content(self):
        executor = ScriptedExecutor(ToolCallResponse(success=False, is_error=True, error="denied"))
        outcome = await executor.execute(_call())
        assert outcome.content == "denied"

    async def test_unknown_tool(self):
        executor = ScriptedExecutor(ToolCallResponse())
        outcome = await executor.execute(_call(name="format_disk"))
        assert outcome.is_error is True
        assert outcome.content == "Error: Tool 'format_disk' not found"
        assert executor.calls == []

    async def test_invalid_arguments(self):
        executor = ScriptedExecutor(ToolCallResponse())
        outcome = await executor.execute(_call(arguments={"path": 42}))
        assert outcome.is_error is True
        assert outcome.content.startswith("Validation error:")
        assert executor.calls == []

    async def test_without_discovered_tools_backend_decides(self):
        executor = ScriptedExecutor(
            ToolCallResponse(content=[ToolContent(type="text", text="ran")]), tools=[]
        )
        outcome = await executor.execute(_call(name="anything", arguments={"x": 1}))
        assert outcome.is_error is False
        assert executor.calls == [("anything", {"x": 1})]

    async def test_nullable_type_list_schema(self):
        tool = ToolDescriptor(
            name="read_file",
            input_schema={"properties": {"path": {"type": ["string", "null"]}}},
        )
        executor = ScriptedExecutor(
            ToolCallResponse(content=[ToolContent(type="text", text="contents")]), tools=[tool]
        )
        outcome = await executor.execute(_call(arguments={"path": "/tmp/a"}))
        assert outcome.is_error is False
        assert outcome.content == "contents"
        assert executor.calls == [("read_file", {"path": "/tmp/a"})]

    async def test_unconvertible_schema_skips_validation(self, caplog):
        tool = ToolDescriptor(
            name="read_file",
            input_schema={"properties": {"path": {"type": "string"}, "_meta": {"type": "object"}}},
        )
        with caplog.at_level(logging.WARNING, logger="tool_loop.executor"):
            executor = ScriptedExecutor(
                ToolCallResponse(content=[ToolContent(type="text", text="contents")]), tools=[tool]
            )
        assert "skipping" in caplog.text

        outcome = await executor.execute(_call(arguments={"path": "/tmp/a", "_meta": {}}))
        assert outcome.is_error is False
        assert executor.calls == [("read_file", {"path": "/tmp/a", "_meta": {}})]

    async def test_discovered_tools_rebuild_validation(self):
        executor = ScriptedExecutor(ToolCallResponse(), tools=[])
        executor.tools = [READ_FILE]
        outcome = await executor.execute(_call(arguments={"path": 42}))
        assert outcome.content.startswith("Validation error:")
        assert executor.calls == []

    async def test_transport_failure(self):
        executor = ScriptedExecutor(ToolExecutionError("MCP tool 'read_file' call failed: pipe broken"))
        outcome = await executor.execute(_call())
        assert outcome.is_error is True
        assert outcome.content == "Tool error: MCP tool 'read_file' call failed: pipe broken"

    async def test_unexpected_exception(self):
        executor = ScriptedExecutor(RuntimeError("kaboom"))
        outcome = await executor.execute(_call())
        assert outcome.is_error is True
        assert outcome.content == "Error: kaboom"

    async def test_cancellation_propagates(self):
        executor = ScriptedExecutor(asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            await executor.execute(_call())


class TestBase:
    async def test_call_tool_not_implemented(self):
        with pytest.raises(NotImplementedError):
            await ToolExecutor().call_tool("t", {})

    async def test_discover_not_implemented(self):
        with pytest.raises(NotImplementedError):
            await ToolExecutor().discover()

    def test_find_tool(self):
        executor = ToolExecutor([READ_FILE])
        assert executor.find_tool("read_file") is READ_FILE
