import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tool_loop.exceptions import ToolExecutionError
from tool_loop.execution import ToolCall
from tool_loop.mcp import DEFAULT_TIMEOUT, MCPConnection, MCPToolExecutor
from tool_loop.tools import ToolDescriptor


# --- Content block helpers ---


def _make_text_content(text: str):
    content = MagicMock()
    content.type = "text"
    content.text = text
    return content


def _make_resource_content(uri: str, text=None):
    content = MagicMock()
    content.type = "resource"
    content.resource = MagicMock()
    content.resource.uri = uri
    content.resource.text = text
    content.resource.mimeType = "text/plain"
    return content


def _make_image_content():
    content = MagicMock()
    content.type = "image"
    return content


def _make_result(content, is_error=False):
    result = MagicMock()
    result.isError = is_error
    result.content = content
    return result


def _make_tool(name, description="", schema=None, annotations=None):
    tool = MagicMock()
    tool.name = name
    tool.description = description
    tool.inputSchema = schema or {"type": "object", "properties": {}}
    tool.annotations = annotations
    return tool


# --- MCPToolExecutor tests ---


class TestMCPToolExecutor:
    async def test_discover(self):
        session = AsyncMock()
        annotations = MagicMock(readOnlyHint=True, idempotentHint=True, destructiveHint=False)
        session.list_tools.return_value = MagicMock(
            tools=[
                _make_tool(
                    "list_directory",
                    "List a directory",
                    {"properties": {"path": {"type": "string"}}, "required": ["path"]},
                    annotations,
                ),
                _make_tool("read_file", None),
            ]
        )

        executor = MCPToolExecutor(session)
        tools = await executor.discover()

        assert [t.name for t in tools] == ["list_directory", "read_file"]
        assert executor.tools == tools
        assert tools[0].hints() == ["read-only", "idempotent"]
        assert tools[1].description == ""
        assert tools[1].annotations is None

    async def test_call_tool_single_text(self):
        session = AsyncMock()
        session.call_tool.return_value = _make_result([_make_text_content("hello world")])

        executor = MCPToolExecutor(session)
        response = await executor.call_tool("greet", {"name": "alice"})

        assert response.text() == "hello world"
        assert response.is_error is False
        assert response.success is True
        session.call_tool.assert_called_once_with("greet", arguments={"name": "alice"})

    async def test_call_tool_mixed_content(self):
        session = AsyncMock()
        session.call_tool.return_value = _make_result(
            [
                _make_text_content("listing"),
                _make_resource_content("file:///notes.txt", "remember"),
                _make_image_content(),
            ]
        )

        response = await MCPToolExecutor(session).call_tool("list_directory", {})

        assert response.text() == (
            "listing\nResource: file:///notes.txt\nremember\n"
            "[1 non-text content block(s) omitted]"
        )

    async def test_call_tool_error_flag(self):
        session = AsyncMock()
        session.call_tool.return_value = _make_result(
            [_make_text_content("something went wrong")], is_error=True
        )

        response = await MCPToolExecutor(session).call_tool("failing", {})
        assert response.is_error is True
        assert response.success is False
        assert response.text() == "something went wrong"

    async def test_call_tool_transport_error_wrapped(self):
        session = AsyncMock()
        session.call_tool.side_effect = ConnectionError("pipe broken")

        with pytest.raises(ToolExecutionError, match="pipe broken"):
            await MCPToolExecutor(session).call_tool("broken", {})

    async def test_call_tool_timeout(self):
        session = AsyncMock()

        async def slow_call(*args, **kwargs):
            await asyncio.sleep(10)

        session.call_tool.side_effect = slow_call

        with pytest.raises(ToolExecutionError, match="timed out"):
            await MCPToolExecutor(session, timeout=0.01).call_tool("slow", {})

    async def test_execute_normalizes_timeout_into_outcome(self):
        session = AsyncMock()

        async def slow_call(*args, **kwargs):
            await asyncio.sleep(10)

        session.call_tool.side_effect = slow_call
        executor = MCPToolExecutor(session, timeout=0.01, tools=[ToolDescriptor(name="slow")])

        outcome = await executor.execute(ToolCall(id="c1", name="slow", arguments={}))
        assert outcome.is_error is True
        assert "timed out" in outcome.content

    def test_default_timeout(self):
        assert MCPToolExecutor(MagicMock())._timeout == DEFAULT_TIMEOUT


# --- MCPConnection tests ---


def _mock_mcp_infra(tools=None):
    """Set up a mock session plus read/write streams."""
    mock_session = AsyncMock()
    mock_session.list_tools.return_value = MagicMock(tools=tools or [])
    mock_session.initialize = AsyncMock()
    return mock_session, MagicMock(), MagicMock()


def _async_cm(value):
    cm = AsyncMock()
    cm.__aenter__.return_value = value
    cm.__aexit__.return_value = False
    return cm


class TestMCPConnection:
    async def test_connect_stdio(self):
        mock_session, mock_read, mock_write = _mock_mcp_infra(
            [_make_tool("read_file", "Read a file")]
        )

        with patch("tool_loop.mcp.stdio_client") as mock_stdio, patch(
            "tool_loop.mcp.ClientSession"
        ) as mock_session_cls:
            mock_stdio.return_value = _async_cm((mock_read, mock_write))
            mock_session_cls.return_value = _async_cm(mock_session)

            from mcp.client.stdio import StdioServerParameters

            conn = MCPConnection(StdioServerParameters(command="python", args=["server.py"]))
            executor = await conn.connect()

            assert isinstance(executor, MCPToolExecutor)
            assert [t.name for t in executor.tools] == ["read_file"]
            mock_session_cls.assert_called_once_with(mock_read, mock_write)
            mock_session.initialize.assert_awaited_once()

            await conn.disconnect()

    async def test_connect_http(self):
        mock_session, mock_read, mock_write = _mock_mcp_infra()

        with patch("tool_loop.mcp.streamablehttp_client") as mock_http, patch(
            "tool_loop.mcp.ClientSession"
        ) as mock_session_cls:
            # The HTTP transport yields a third item (session id getter).
            mock_http.return_value = _async_cm((mock_read, mock_write, MagicMock()))
            mock_session_cls.return_value = _async_cm(mock_session)

            conn = MCPConnection("http://localhost:8000/mcp")
            executor = await conn.connect()

            assert executor.tools == []
            mock_http.assert_called_once_with("http://localhost:8000/mcp")

            await conn.disconnect()

    async def test_context_manager(self):
        mock_session, mock_read, mock_write = _mock_mcp_infra()

        with patch("tool_loop.mcp.stdio_client") as mock_stdio, patch(
            "tool_loop.mcp.ClientSession"
        ) as mock_session_cls:
            stdio_cm = _async_cm((mock_read, mock_write))
            mock_stdio.return_value = stdio_cm
            mock_session_cls.return_value = _async_cm(mock_session)

            from mcp.client.stdio import StdioServerParameters

            async with MCPConnection(StdioServerParameters(command="echo", args=["hi"])) as executor:
                assert isinstance(executor, MCPToolExecutor)

            stdio_cm.__aexit__.assert_awaited_once()

    async def test_disconnect_without_connect(self):
        from mcp.client.stdio import StdioServerParameters

        conn = MCPConnection(StdioServerParameters(command="echo", args=["hi"]))
        await conn.disconnect()
        assert conn._exit_stack is None

    async def test_double_connect_cleans_up_first(self):
        mock_session, mock_read, mock_write = _mock_mcp_infra()

        with patch("tool_loop.mcp.stdio_client") as mock_stdio, patch(
            "tool_loop.mcp.ClientSession"
        ) as mock_session_cls:
            mock_stdio.return_value = _async_cm((mock_read, mock_write))
            mock_session_cls.return_value = _async_cm(mock_session)

            from mcp.client.stdio import StdioServerParameters

            conn = MCPConnection(StdioServerParameters(command="echo", args=["hi"]))
            await conn.connect()
            first_stack = conn._exit_stack

            await conn.connect()
            assert conn._exit_stack is not first_stack

            await conn.disconnect()

    async def test_connect_failure_cleans_up(self):
        mock_session, mock_read, mock_write = _mock_mcp_infra()
        mock_session.initialize.side_effect = RuntimeError("init failed")

        with patch("tool_loop.mcp.stdio_client") as mock_stdio, patch(
            "tool_loop.mcp.ClientSession"
        ) as mock_session_cls:
            stdio_cm = _async_cm((mock_read, mock_write))
            mock_stdio.return_value = stdio_cm
            mock_session_cls.return_value = _async_cm(mock_session)

            from mcp.client.stdio import StdioServerParameters

            conn = MCPConnection(StdioServerParameters(command="echo", args=["hi"]))
            with pytest.raises(RuntimeError, match="init failed"):
                await conn.connect()

            assert conn._exit_stack is None
            assert conn._session is None
            stdio_cm.__aexit__.assert_awaited_once()

    async def test_custom_timeout_propagated(self):
        mock_session, mock_read, mock_write = _mock_mcp_infra([_make_tool("t")])

        with patch("tool_loop.mcp.stdio_client") as mock_stdio, patch(
            "tool_loop.mcp.ClientSession"
        ) as mock_session_cls:
            mock_stdio.return_value = _async_cm((mock_read, mock_write))
            mock_session_cls.return_value = _async_cm(mock_session)

            from mcp.client.stdio import StdioServerParameters

            conn = MCPConnection(
                StdioServerParameters(command="echo", args=["hi"]),
                timeout=120.0,
            )
            executor = await conn.connect()
            assert executor._timeout == 120.0
            await conn.disconnect()
