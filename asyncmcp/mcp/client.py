"""MCP client implementation.

The MCPClient drives the MCP protocol lifecycle over any transport:
1. Create the transport (in-process server or stdio subprocess)
2. Perform initialization handshake
3. Forward tool, prompt, resource and ping requests
4. Clean shutdown

Every method returns the server's result as plain JSON data and relays
transport failures unchanged.

Usage:
    async with MCPClient(command=["python", "-m", "some_server"]) as client:
        tools = await client.list_tools()
        result = await client.call_tool("echo", {"message": "hello"})
"""

import logging
from typing import TYPE_CHECKING, Any

from asyncmcp.core.errors import ConfigError
from asyncmcp.mcp.protocol import (
    METHOD_INITIALIZE,
    METHOD_INITIALIZED,
    PROTOCOL_VERSION,
    MCPClientInfo,
)
from asyncmcp.mcp.transport import InProcessTransport, MCPTransport, StdioTransport

if TYPE_CHECKING:
    from asyncmcp.config.schema import MCPServerConfig

logger = logging.getLogger(__name__)


def _list_field(result: Any, key: str) -> list[Any]:
    """Pull a list out of a result object, defaulting to empty."""
    if isinstance(result, dict):
        value = result.get(key)
        if value is not None:
            return value
    return []


class MCPClient:
    """Client for connecting to MCP servers.

    Exactly one target must be given: an in-process ``server`` object, a
    ``command`` to run as a stdio subprocess, a ``url`` (HTTP, not yet
    implemented), or a ready-made ``transport``. The transport is created on
    first use and owned by this client.

    Methods other than initialize() and shutdown() are not gated on the
    handshake; calling them first is the caller's responsibility.
    """

    def __init__(
        self,
        server: Any = None,
        command: list[str] | None = None,
        url: str | None = None,
        transport: MCPTransport | None = None,
        client_info: MCPClientInfo | None = None,
        env: dict[str, str] | None = None,
        env_passthrough: list[str] | None = None,
        cwd: str | None = None,
        deferred_timeout: float | None = None,
    ):
        """Initialize MCP client.

        Args:
            server: In-process MCP server exposing ``handle(request, context)``.
            command: Command and arguments launching a stdio MCP server.
            url: URL of an HTTP MCP server (not yet implemented).
            transport: Pre-built transport to use instead of creating one.
            client_info: Client identification (defaults to asyncmcp).
            env: Explicit environment for a stdio server.
            env_passthrough: Host env var names passed to a stdio server.
            cwd: Working directory for a stdio server.
            deferred_timeout: Bound on waiting for async in-process results.

        Raises:
            ConfigError: If no target, or more than one, is given.
        """
        targets = sum((server is not None, bool(command), bool(url), transport is not None))
        if targets == 0:
            raise ConfigError("Must provide server, command, or url")
        if targets > 1:
            raise ConfigError("Provide only one of server, command, url, or transport")

        self._server = server
        self._command = command
        self._url = url
        self._transport = transport
        self._client_info = client_info or MCPClientInfo()
        self._env = env
        self._env_passthrough = env_passthrough
        self._cwd = cwd
        self._deferred_timeout = deferred_timeout

        self._server_info: dict[str, Any] | None = None
        self._server_capabilities: dict[str, Any] | None = None
        self._initialized = False

    @classmethod
    def from_config(
        cls, config: "MCPServerConfig", client_info: MCPClientInfo | None = None
    ) -> "MCPClient":
        """Create a client for a configured server.

        Raises:
            ConfigError: If the server is disabled in the configuration.
        """
        if not config.enabled:
            raise ConfigError(f"MCP server '{config.name}' is disabled")
        return cls(
            command=config.get_command_list() or None,
            url=config.url,
            client_info=client_info,
            env=config.env,
            env_passthrough=config.env_passthrough,
            cwd=config.cwd,
        )

    def _ensure_transport(self) -> MCPTransport:
        """Create the transport on first use."""
        if self._transport is not None:
            return self._transport

        if self._server is not None:
            self._transport = InProcessTransport(
                self._server, deferred_timeout=self._deferred_timeout
            )
        elif self._command:
            self._transport = StdioTransport(
                self._command,
                env=self._env,
                env_passthrough=self._env_passthrough,
                cwd=self._cwd,
            )
        elif self._url:
            raise ConfigError("HTTP transport not yet implemented")
        else:
            raise ConfigError("Must provide server, command, or url")

        logger.debug("Created %s", type(self._transport).__name__)
        return self._transport

    async def _call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        return await self._ensure_transport().send_request(method, params)

    async def initialize(self) -> dict[str, Any]:
        """Perform MCP initialization handshake.

        Sends the initialize request, records server info and capabilities,
        then sends the initialized notification. The notification has been
        transmitted by the time this returns.

        Returns:
            The server's initialize result.

        Raises:
            MCPError: If the server returns an error or the transport fails.
        """
        transport = self._ensure_transport()

        result = await transport.send_request(
            METHOD_INITIALIZE,
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": self._client_info.to_dict(),
            },
        )
        if not isinstance(result, dict):
            result = {}

        self._server_info = result.get("serverInfo")
        self._server_capabilities = result.get("capabilities")
        self._initialized = True
        logger.debug("MCP handshake complete: %s", self._server_info)

        await transport.send_notification(METHOD_INITIALIZED)

        return result

    async def list_tools(self) -> list[dict[str, Any]]:
        """Return tool definitions from the server."""
        result = await self._call("tools/list")
        return _list_field(result, "tools")

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """Invoke a tool on the server.

        Args:
            name: Name of the tool to invoke.
            arguments: Tool arguments (empty dict if None).

        Returns:
            The tool result, typically ``{"content": [...], "isError": bool}``.
        """
        return await self._call("tools/call", {"name": name, "arguments": arguments or {}})

    async def list_prompts(self) -> list[dict[str, Any]]:
        """Return prompt definitions from the server."""
        result = await self._call("prompts/list")
        return _list_field(result, "prompts")

    async def get_prompt(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """Get a prompt with its arguments filled in."""
        return await self._call("prompts/get", {"name": name, "arguments": arguments or {}})

    async def list_resources(self) -> list[dict[str, Any]]:
        """Return resource definitions from the server."""
        result = await self._call("resources/list")
        return _list_field(result, "resources")

    async def read_resource(self, uri: str) -> Any:
        """Read a resource by URI."""
        return await self._call("resources/read", {"uri": uri})

    async def ping(self) -> bool:
        """Check that the server is responsive."""
        await self._call("ping")
        return True

    async def shutdown(self) -> bool:
        """Close the transport (terminating a stdio server)."""
        close = getattr(self._transport, "close", None)
        if close is not None:
            await close()
        return True

    async def __aenter__(self) -> "MCPClient":
        """Initialize the session, shutting down again if the handshake fails."""
        try:
            await self.initialize()
        except BaseException:
            await self.shutdown()
            raise
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Shut down the session."""
        await self.shutdown()

    @property
    def transport(self) -> MCPTransport | None:
        """The active transport, if one has been created."""
        return self._transport

    @property
    def server_info(self) -> dict[str, Any] | None:
        """The ``serverInfo`` from the initialize result."""
        return self._server_info

    @property
    def server_capabilities(self) -> dict[str, Any] | None:
        """The server ``capabilities`` from the initialize result."""
        return self._server_capabilities

    @property
    def is_initialized(self) -> bool:
        """Check if client has completed initialization."""
        return self._initialized
