"""Pydantic models for MCP server configuration."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from asyncmcp.core.errors import ConfigError


class MCPServerConfig(BaseModel):
    """Configuration for an MCP server.

    Each server is configured with either a command (stdio transport) or a
    URL (HTTP transport, not yet implemented).

    SECURITY: stdio servers receive only safe environment variables by default
    (PATH, HOME, USER, etc.). To pass additional vars:
    - Use `env` for explicit key-value pairs
    - Use `env_passthrough` to copy vars from host environment

    Supports two command formats:
    1. List format: command as list ["npx", "-y", "@modelcontextprotocol/server-everything"]
    2. Official format: command as string + args array
       {"command": "npx", "args": ["-y", "@modelcontextprotocol/server-everything"]}
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    """Friendly name for the server."""

    command: str | list[str] | None = None
    """Command to launch server (for stdio transport).
    Can be a list or a string (official format, use with args)."""

    args: list[str] | None = None
    """Arguments for command when command is a string (official format)."""

    url: str | None = None
    """URL for HTTP transport (not yet implemented)."""

    env: dict[str, str] | None = None
    """Explicit environment variables for subprocess (highest priority)."""

    env_passthrough: list[str] | None = None
    """Names of host env vars to pass to subprocess (e.g., ["GITHUB_TOKEN"])."""

    cwd: str | None = None
    """Working directory for the server subprocess."""

    enabled: bool = True
    """Whether this server is enabled."""

    def get_command_list(self) -> list[str]:
        """Return command as list, merging command + args if needed.

        Returns:
            Command as list of strings suitable for subprocess execution.
            Empty list if no command configured.
        """
        if isinstance(self.command, list):
            return list(self.command)
        elif isinstance(self.command, str):
            cmd = [self.command]
            if self.args:
                cmd.extend(self.args)
            return cmd
        return []

    @model_validator(mode="after")
    def validate_transport(self) -> "MCPServerConfig":
        """Ensure exactly one of command or url is set."""
        if self.command and self.url:
            raise ValueError("MCPServerConfig: Cannot specify both 'command' and 'url'")
        if not self.command and not self.url:
            raise ValueError("MCPServerConfig: Must specify either 'command' or 'url'")
        return self


class MCPConfig(BaseModel):
    """Root of an mcp.json file.

    Accepts either the list format:
        {"servers": [{"name": "test", "command": ["python", "-m", "server"]}]}

    or the official keyed format:
        {"mcpServers": {"test": {"command": "python", "args": ["-m", "server"]}}}
    """

    model_config = ConfigDict(extra="forbid")

    servers: list[MCPServerConfig] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize_official_format(cls, data: Any) -> Any:
        """Fold the official ``mcpServers`` mapping into ``servers``."""
        if not isinstance(data, dict) or "mcpServers" not in data:
            return data

        data = dict(data)
        keyed = data.pop("mcpServers") or {}
        if not isinstance(keyed, dict):
            raise ValueError("'mcpServers' must be an object keyed by server name")

        servers = list(data.get("servers") or [])
        for name, entry in keyed.items():
            if not isinstance(entry, dict):
                raise ValueError(f"Server '{name}' must be an object")
            servers.append({"name": name, **entry})
        data["servers"] = servers
        return data

    @model_validator(mode="after")
    def validate_unique_names(self) -> "MCPConfig":
        """Server names must be unique."""
        seen: set[str] = set()
        for server in self.servers:
            if server.name in seen:
                raise ValueError(f"Duplicate MCP server name: {server.name}")
            seen.add(server.name)
        return self

    @property
    def enabled_servers(self) -> list[MCPServerConfig]:
        return [s for s in self.servers if s.enabled]

    def get_server(self, name: str) -> MCPServerConfig:
        """Look up a server by name.

        Raises:
            ConfigError: If no server has that name.
        """
        for server in self.servers:
            if server.name == name:
                return server
        available = ", ".join(s.name for s in self.servers) or "none"
        raise ConfigError(f"Unknown MCP server '{name}' (available: {available})")
