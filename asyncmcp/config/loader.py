"""Load MCP server configuration from mcp.json files.

Search order when no explicit path is given (first file found wins):
1. ./mcp.json in the working directory
2. ~/.asyncmcp/mcp.json
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from asyncmcp.config.schema import MCPConfig
from asyncmcp.core.errors import ConfigError, LoadError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "mcp.json"


def default_config_paths(cwd: Path | None = None) -> list[Path]:
    """Return the locations searched for mcp.json, highest priority first."""
    base = cwd or Path.cwd()
    return [base / CONFIG_FILENAME, Path.home() / ".asyncmcp" / CONFIG_FILENAME]


def read_json_object(path: Path) -> dict[str, Any]:
    """Read a JSON object from disk.

    A UTF-8 BOM is tolerated and a blank file reads as ``{}``.

    Raises:
        LoadError: If the file is missing, unreadable, not JSON, or not an object.
    """
    # resolve() so Git Bash style paths (/c/Users/...) work on Windows
    resolved = path.resolve()
    if not resolved.is_file():
        raise LoadError(f"mcp: File not found: {path}")

    try:
        text = resolved.read_text(encoding="utf-8-sig").strip()
    except OSError as e:
        raise LoadError(f"mcp: Failed to read file {path}: {e}") from e
    if not text:
        return {}

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LoadError(f"mcp: Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise LoadError(f"mcp: Expected object in {path}, got {type(data).__name__}")
    return data


def find_config_file(cwd: Path | None = None) -> Path | None:
    """Return the first existing mcp.json on the search path."""
    for candidate in default_config_paths(cwd):
        if candidate.resolve().is_file():
            return candidate
        logger.debug("No config at %s", candidate)
    return None


def load_mcp_config(path: Path | None = None, cwd: Path | None = None) -> MCPConfig:
    """Load and validate MCP server configuration.

    Args:
        path: Explicit config file. Must exist if given.
        cwd: Directory to search instead of the current one.

    Returns:
        Validated config. Empty when no file is found during the search.

    Raises:
        LoadError: If the file can't be read or isn't a JSON object.
        ConfigError: If validation fails.
    """
    source = path if path is not None else find_config_file(cwd)
    if source is None:
        logger.debug("No mcp.json found, using empty config")
        return MCPConfig()

    logger.debug("Loading MCP config from %s", source)
    data = read_json_object(source)

    try:
        return MCPConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"MCP config validation failed for {source}: {e}") from e
