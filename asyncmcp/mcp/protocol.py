"""MCP protocol types.

Message builders and small data structures for MCP (Model Context
Protocol), which layers tools, resources, and prompts on top of JSON-RPC 2.0.

MCP Spec: https://modelcontextprotocol.io/specification/2025-11-25
"""

from dataclasses import dataclass, field
from typing import Any

from asyncmcp import __version__

PROTOCOL_VERSION = "2025-11-25"
JSONRPC_VERSION = "2.0"

# Method names sent by the client
METHOD_INITIALIZE = "initialize"
METHOD_INITIALIZED = "notifications/initialized"


def make_request(
    request_id: int, method: str, params: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Create a JSON-RPC request.

    ``params`` is omitted only when it is None; an empty dict is sent as-is.
    """
    request: dict[str, Any] = {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "method": method,
    }
    if params is not None:
        request["params"] = params
    return request


def make_notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create a JSON-RPC notification (no id, no response expected)."""
    notification: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
    if params is not None:
        notification["params"] = params
    return notification


def is_valid_request_id(value: Any) -> bool:
    """Check whether a response ``id`` can refer to a client-issued request.

    The client only issues positive integer ids. ``bool`` is rejected even
    though it subclasses ``int``.
    """
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass
class MCPClientInfo:
    """Client information sent during initialization.

    Attributes:
        name: Client name.
        version: Client version.
    """

    name: str = "asyncmcp"
    version: str = __version__

    def to_dict(self) -> dict[str, str]:
        """Convert to dict for MCP protocol."""
        return {"name": self.name, "version": self.version}


@dataclass
class MCPServerInfo:
    """Server information from MCP initialization.

    Attributes:
        name: Server name.
        version: Server version.
        capabilities: Server capabilities (tools, resources, prompts, etc).
    """

    name: str
    version: str
    capabilities: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MCPServerInfo":
        """Create from initialize response."""
        server_info = data.get("serverInfo") or {}
        return cls(
            name=server_info.get("name", "unknown"),
            version=server_info.get("version", "unknown"),
            capabilities=data.get("capabilities") or {},
        )
