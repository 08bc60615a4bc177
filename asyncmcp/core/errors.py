"""Typed exception hierarchy for asyncmcp."""

from __future__ import annotations


class AsyncMCPError(Exception):
    """Base class for all asyncmcp errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(AsyncMCPError):
    """Raised for configuration issues (missing target, invalid server config)."""


class LoadError(AsyncMCPError):
    """Raised when a config file is missing, unreadable, or not valid JSON."""
