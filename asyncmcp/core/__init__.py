"""Core types shared across asyncmcp."""

from asyncmcp.core.errors import AsyncMCPError, ConfigError, LoadError

__all__ = [
    "AsyncMCPError",
    "ConfigError",
    "LoadError",
]
