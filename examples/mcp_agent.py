#!/usr/bin/env python3
"""Example: Agent using file-system tools from an MCP server.

Connects to the example MCP server (mcp_server.py) over stdio, discovers
its tools, and runs an agent whose model writes its tool calls into the
reply text as <tool_call> notation.

Uses a mock model so no inference server is needed.

Requirements:
    pip install tool-loop[mcp]

Run:
    python examples/mcp_agent.py
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mcp.client.stdio import StdioServerParameters

from tool_loop import Agent, Message, ModelAdaptor, ModelResponse, build_agent_request
from tool_loop.mcp import MCPConnection


class MockModel(ModelAdaptor):
    """Model that lists the examples directory once, then answers."""

    def __init__(self, directory: str):
        self.directory = directory
        self.call_count = 0

    async def call(self, messages, tools, on_chunk=None, **kwargs):
        self.call_count += 1
        if self.call_count == 1:
            text = (
                "Let me look at that directory.\n"
                f'<tool_call>{{"name": "list_directory", "arguments": {{"path": "{self.directory}"}}}}</tool_call>'
            )
        else:
            # The last message is the <tool_result> envelope.
            text = f"Here is what the server returned:\n{messages[-1].content}"
        return ModelResponse(message=Message(role="assistant", content=text))


async def main():
    here = os.path.dirname(os.path.abspath(__file__))
    server_params = StdioServerParameters(
        command=sys.executable,
        args=[os.path.join(here, "mcp_server.py")],
    )

    async with MCPConnection(server_params) as executor:
        print(f"Discovered {len(executor.tools)} MCP tool(s): {[t.name for t in executor.tools]}")

        agent = Agent(model=MockModel(here), executor=executor)
        request = build_agent_request("What is in this folder?", executor.tools, current_path=here)
        response = await agent.run_async(request)

        for record in response.message.tool_executions:
            print(f"  {record.tool_name}({record.arguments}) -> {record.status} in {record.execution_time_ms}ms")
        print(f"Response: {response.message.content}")


if __name__ == "__main__":
    asyncio.run(main())
