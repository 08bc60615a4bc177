"""MCP test server for development and testing.

Usage:
    python -m asyncmcp.mcp.test_server

Tools provided:
    - echo: Echo back a message
    - get_time: Get current date/time
    - add: Add two numbers
    - slow_operation: Asynchronous tool (sleeps, optionally fails)

Resources provided:
    - file:///readme.txt, file:///config.json, file:///data/users.csv

Prompts provided:
    - greeting, code_review, summarize

The same server can be used in-process:

    from asyncmcp.mcp import MCPClient
    from asyncmcp.mcp.test_server import TestServer

    client = MCPClient(server=TestServer())
"""

from asyncmcp.mcp.test_server.server import TestServer

__all__ = ["TestServer"]
