"""Command-line interface for asyncmcp."""

from asyncmcp.cli.commands import main

__all__ = ["main"]
