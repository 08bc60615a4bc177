"""MCP (Model Context Protocol) client implementation.

Usage:
    from asyncmcp.mcp import MCPClient

    # Server object in this process
    async with MCPClient(server=my_server) as client:
        tools = await client.list_tools()

    # Server as a subprocess speaking JSON-RPC over stdio
    async with MCPClient(command=["python", "-m", "some_mcp_server"]) as client:
        result = await client.call_tool("echo", {"message": "hello"})
"""

from asyncmcp.mcp.client import MCPClient
from asyncmcp.mcp.errors import (
    MCPAsyncToolError,
    MCPError,
    MCPInvalidResponseError,
    MCPProcessExitedError,
    MCPProtocolError,
    MCPTransportClosedError,
    MCPTransportError,
)
from asyncmcp.mcp.protocol import PROTOCOL_VERSION, MCPClientInfo, MCPServerInfo
from asyncmcp.mcp.transport import (
    InProcessTransport,
    MCPTransport,
    StdioTransport,
    TransportState,
)

__all__ = [
    "InProcessTransport",
    "MCPAsyncToolError",
    "MCPClient",
    "MCPClientInfo",
    "MCPError",
    "MCPInvalidResponseError",
    "MCPProcessExitedError",
    "MCPProtocolError",
    "MCPServerInfo",
    "MCPTransport",
    "MCPTransportClosedError",
    "MCPTransportError",
    "PROTOCOL_VERSION",
    "StdioTransport",
    "TransportState",
]
