#!/usr/bin/env python3
"""Small file-system MCP server exposing 'list_directory' and 'read_file'.

This server runs over stdio transport and is used by mcp_agent.py.

Run standalone (for testing):
    python examples/mcp_server.py
"""

import os

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

server = FastMCP("filesystem-server")

READ_ONLY = ToolAnnotations(readOnlyHint=True, idempotentHint=True, destructiveHint=False)


@server.tool(annotations=READ_ONLY)
def list_directory(path: str) -> str:
    """List the entries of a directory, one per line. Directories end with '/'."""
    entries = []
    for entry in sorted(os.scandir(path), key=lambda e: e.name):
        entries.append(entry.name + "/" if entry.is_dir() else entry.name)
    return "\n".join(entries) or "(empty directory)"


@server.tool(annotations=READ_ONLY)
def read_file(path: str, max_bytes: int = 4096) -> str:
    """Read the start of a text file."""
    with open(path, encoding="utf-8", errors="replace") as f:
        return f.read(max_bytes)


if __name__ == "__main__":
    server.run(transport="stdio")
