"""MCP error types.

Every failure surfaced by a transport or the client is an ``MCPError``
subclass carrying a human-readable message. Nothing here is retried; callers
decide what to do with a failed request.
"""

from __future__ import annotations

from typing import Any

from asyncmcp.core.errors import AsyncMCPError


class MCPError(AsyncMCPError):
    """Error from the MCP protocol, a transport, or the server.

    Attributes:
        code: JSON-RPC error code (only set for server-reported errors).
        message: Human-readable error message.
    """

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class MCPTransportError(MCPError):
    """Error in the transport layer (spawn failure, broken pipe, handler crash)."""


class MCPTransportClosedError(MCPTransportError):
    """Raised for any call made after the transport was closed or the server exited."""

    def __init__(self, message: str = "MCP server process has exited") -> None:
        super().__init__(message)


class MCPProcessExitedError(MCPTransportError):
    """Raised for requests still in flight when the server process exits.

    Attributes:
        exit_code: The process return code (negative for signal termination).
    """

    def __init__(self, exit_code: int | None) -> None:
        self.exit_code = exit_code
        super().__init__(f"MCP server process exited (code {exit_code})")


class MCPProtocolError(MCPError):
    """The server answered a request with a JSON-RPC ``error`` object.

    Attributes:
        code: JSON-RPC error code from the server.
        server_message: The server's message, without the ``MCP error`` prefix.
        data: Optional ``data`` member of the error object.
    """

    def __init__(self, code: Any, server_message: Any, data: Any = None) -> None:
        self.server_message = server_message
        self.data = data
        super().__init__(f"MCP error {code}: {server_message}", code=code)

    @classmethod
    def from_error(cls, error: Any) -> MCPProtocolError:
        """Build from the ``error`` member of a JSON-RPC response."""
        if isinstance(error, dict):
            return cls(error.get("code"), error.get("message"), error.get("data"))
        return cls(None, error)


class MCPInvalidResponseError(MCPError):
    """An in-process server returned nothing, or something that is not a response object."""


class MCPAsyncToolError(MCPError):
    """A deferred in-process result was rejected or never settled."""

    def __init__(self, reason: object) -> None:
        self.reason = reason
        super().__init__(f"MCP async tool error: {reason}")
