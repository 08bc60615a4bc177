"""asyncmcp - asynchronous Model Context Protocol client.

Talks to MCP servers either in-process (direct ``handle()`` calls) or as a
subprocess speaking newline-delimited JSON-RPC over stdin/stdout.
"""

__version__ = "0.1.0"
