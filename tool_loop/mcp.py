"""MCP (Model Context Protocol) tool backend for tool-loop.

MCPConnection opens a session to an MCP server (e.g. a file-system server),
discovers its tools once, and hands back an MCPToolExecutor the Agent can
run tool calls through.

Requires: pip install tool-loop[mcp]
"""

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import Any, Optional, Union

from tool_loop.exceptions import ToolExecutionError
from tool_loop.executor import ToolExecutor
from tool_loop.tools import ToolAnnotations, ToolCallResponse, ToolContent, ToolDescriptor

from mcp import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client
from mcp.client.streamable_http import streamablehttp_client

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def _annotations_from(raw: Any) -> Optional[ToolAnnotations]:
    if raw is None:
        return None
    return ToolAnnotations(
        read_only_hint=getattr(raw, "readOnlyHint", None),
        idempotent_hint=getattr(raw, "idempotentHint", None),
        destructive_hint=getattr(raw, "destructiveHint", None),
    )


def _content_from(block: Any) -> Optional[ToolContent]:
    """Map one MCP content block to the normalized text/resource form."""
    block_type = getattr(block, "type", None)
    if block_type == "text":
        return ToolContent(type="text", text=block.text)
    if block_type == "resource":
        resource = block.resource
        return ToolContent(
            type="resource",
            uri=str(resource.uri),
            text=getattr(resource, "text", None),
            mime_type=getattr(resource, "mimeType", None),
        )
    if block_type == "resource_link":
        return ToolContent(
            type="resource",
            uri=str(block.uri),
            mime_type=getattr(block, "mimeType", None),
        )
    return None


class MCPToolExecutor(ToolExecutor):
    """Runs tool calls through an initialized MCP client session."""

    def __init__(
        self,
        session: ClientSession,
        timeout: float = DEFAULT_TIMEOUT,
        tools: Optional[list[ToolDescriptor]] = None,
    ):
        super().__init__(tools)
        self._session = session
        self._timeout = timeout

    async def discover(self) -> list[ToolDescriptor]:
        tools_result = await asyncio.wait_for(
            self._session.list_tools(), timeout=self._timeout
        )
        self.tools = [
            ToolDescriptor(
                name=t.name,
                description=t.description or "",
                input_schema=t.inputSchema or {},
                annotations=_annotations_from(getattr(t, "annotations", None)),
            )
            for t in tools_result.tools
        ]
        logger.info(f"Discovered {len(self.tools)} MCP tool(s): {[t.name for t in self.tools]}")
        return self.tools

    async def call_tool(self, name: str, arguments: dict) -> ToolCallResponse:
        try:
            result = await asyncio.wait_for(
                self._session.call_tool(name, arguments=arguments),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            raise ToolExecutionError(
                f"MCP tool '{name}' timed out after {self._timeout}s"
            )
        except Exception as e:
            raise ToolExecutionError(f"MCP tool '{name}' call failed: {e}") from e

        content = []
        skipped = 0
        for block in result.content:
            part = _content_from(block)
            if part is None:
                skipped += 1
            else:
                content.append(part)

        if skipped:
            content.append(
                ToolContent(type="text", text=f"[{skipped} non-text content block(s) omitted]")
            )

        is_error = bool(result.isError)
        return ToolCallResponse(success=not is_error, content=content, is_error=is_error)


class MCPConnection:
    """Manages the lifecycle of one MCP server connection.

    Supports two transports:
    - stdio: MCPConnection(StdioServerParameters(command="npx", args=[...]))
    - streamable HTTP: MCPConnection("http://localhost:8000/mcp")

    Args:
        server_params: StdioServerParameters for stdio, or a URL string for HTTP.
        timeout: Timeout in seconds for MCP operations (initialize, list_tools,
            and individual tool calls). Defaults to 30s.

    Usage as async context manager:
        async with MCPConnection(server_params) as executor:
            agent = Agent(model=model, executor=executor)
            response = await agent.run_async(request)
    """

    def __init__(
        self,
        server_params: Union[StdioServerParameters, str],
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._server_params = server_params
        self._timeout = timeout
        self._exit_stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None

    async def connect(self) -> MCPToolExecutor:
        """Open transport, initialize session, discover tools."""
        if self._exit_stack is not None:
            await self.disconnect()

        self._exit_stack = AsyncExitStack()
        try:
            if isinstance(self._server_params, str):
                transport = await self._exit_stack.enter_async_context(
                    streamablehttp_client(self._server_params)
                )
            else:
                transport = await self._exit_stack.enter_async_context(
                    stdio_client(self._server_params)
                )

            read_stream, write_stream, *_ = transport
            self._session = await self._exit_stack.enter_async_context(
                ClientSession(read_stream, write_stream)
            )

            await asyncio.wait_for(
                self._session.initialize(), timeout=self._timeout
            )

            executor = MCPToolExecutor(self._session, timeout=self._timeout)
            await executor.discover()
            return executor
        except BaseException:
            await self.disconnect()
            raise

    async def disconnect(self) -> None:
        """Clean up transport and session resources."""
        if self._exit_stack:
            await self._exit_stack.aclose()
            self._exit_stack = None
            self._session = None

    async def __aenter__(self) -> MCPToolExecutor:
        return await self.connect()

    async def __aexit__(self, *exc: Any) -> None:
        await self.disconnect()
