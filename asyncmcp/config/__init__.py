"""Configuration loading and validation."""

from asyncmcp.config.loader import load_mcp_config
from asyncmcp.config.schema import MCPConfig, MCPServerConfig

__all__ = [
    "MCPConfig",
    "MCPServerConfig",
    "load_mcp_config",
]
