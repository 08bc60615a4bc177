"""Console output helpers for the CLI."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

_console: Console | None = None
_error_console: Console | None = None


def get_console() -> Console:
    """Get the shared stdout Console instance."""
    global _console
    if _console is None:
        _console = Console(highlight=False, markup=False)
    return _console


def get_error_console() -> Console:
    """Get the shared stderr Console instance (logging, errors)."""
    global _error_console
    if _error_console is None:
        _error_console = Console(stderr=True, highlight=False, markup=False)
    return _error_console


def configure_logging(verbose: bool) -> None:
    """Route asyncmcp logging to stderr through Rich."""
    handler = RichHandler(console=get_error_console(), show_path=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
    )


def print_json(data: Any) -> None:
    """Print data as formatted JSON to stdout."""
    print(json.dumps(data, indent=2))


def print_error(message: str) -> None:
    """Print error message to stderr."""
    print(f"Error: {message}", file=sys.stderr)


def print_definitions(title: str, items: list[dict[str, Any]], key: str = "name") -> None:
    """Render tool/prompt/resource definitions as a table."""
    table = Table(title=title)
    table.add_column(key.capitalize(), no_wrap=True)
    table.add_column("Description")

    for item in items:
        table.add_row(str(item.get(key, "")), str(item.get("description") or ""))

    get_console().print(table)
