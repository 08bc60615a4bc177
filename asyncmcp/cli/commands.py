"""CLI commands: thin wrappers around MCPClient.

    asyncmcp tools -- python -m asyncmcp.mcp.test_server
    asyncmcp call echo --args '{"message": "hi"}' --server test
    asyncmcp read file:///readme.txt -- npx -y some-mcp-server
    asyncmcp ping --config ./mcp.json --server test

Each command returns a process exit code.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from asyncmcp.cli.arg_parser import parse_args
from asyncmcp.cli.output import (
    configure_logging,
    get_console,
    print_definitions,
    print_error,
    print_json,
)
from asyncmcp.config import load_mcp_config
from asyncmcp.core.errors import AsyncMCPError, ConfigError
from asyncmcp.mcp.client import MCPClient
from asyncmcp.mcp.protocol import MCPServerInfo

logger = logging.getLogger(__name__)


def build_client(args: argparse.Namespace) -> MCPClient:
    """Create a client for the server selected on the command line.

    Raises:
        ConfigError: If no server was selected or the name is unknown.
        LoadError: If the config file can't be loaded.
    """
    if args.server_command:
        return MCPClient(command=args.server_command)

    config = load_mcp_config(args.config)
    if args.server:
        return MCPClient.from_config(config.get_server(args.server))

    enabled = config.enabled_servers
    if len(enabled) == 1:
        return MCPClient.from_config(enabled[0])

    raise ConfigError("Select a server with --server NAME or pass a command after '--'")


def _parse_json_object(text: str, what: str) -> dict[str, Any]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON for {what}: {e}") from e
    if not isinstance(value, dict):
        raise ConfigError(f"{what} must be a JSON object")
    return value


async def run_command(args: argparse.Namespace) -> int:
    """Connect, run one command, and shut down."""
    try:
        # Reject malformed --args before any server is started
        arguments: dict[str, Any] = {}
        if args.command == "call":
            arguments = _parse_json_object(args.tool_args, "--args")
        elif args.command == "prompt":
            arguments = _parse_json_object(args.prompt_args, "--args")

        client = build_client(args)
        async with client:
            info = MCPServerInfo.from_dict(
                {"serverInfo": client.server_info, "capabilities": client.server_capabilities}
            )
            logger.debug("Connected to %s %s", info.name, info.version)

            if args.command == "tools":
                print_definitions(f"Tools ({info.name})", await client.list_tools())
            elif args.command == "prompts":
                print_definitions(f"Prompts ({info.name})", await client.list_prompts())
            elif args.command == "resources":
                print_definitions(
                    f"Resources ({info.name})", await client.list_resources(), key="uri"
                )
            elif args.command == "call":
                print_json(await client.call_tool(args.tool, arguments))
            elif args.command == "prompt":
                print_json(await client.get_prompt(args.name, arguments))
            elif args.command == "read":
                print_json(await client.read_resource(args.uri))
            elif args.command == "ping":
                await client.ping()
                get_console().print(f"{info.name} {info.version}: ok")
    except AsyncMCPError as e:
        print_error(e.message)
        return 1

    return 0


def main(argv: list[str] | None = None) -> None:
    """Console script entry point."""
    args = parse_args(argv)
    configure_logging(args.verbose)
    sys.exit(asyncio.run(run_command(args)))
