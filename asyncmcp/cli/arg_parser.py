"""Argument parsing for the asyncmcp CLI."""

import argparse
import sys
from pathlib import Path

EPILOG = """\
Select a server either by name from mcp.json (--server NAME) or by giving
its launch command after '--':

  asyncmcp tools -- python -m asyncmcp.mcp.test_server
  asyncmcp call echo --args '{"message": "hi"}' --server test
"""


def add_target_args(parser: argparse.ArgumentParser) -> None:
    """Add the arguments selecting which MCP server to talk to."""
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Path to mcp.json (default: ./mcp.json, then ~/.asyncmcp/mcp.json)",
    )
    parser.add_argument(
        "--server", "-s",
        help="Name of a server defined in mcp.json",
    )


def split_server_command(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split argv at the first '--' into CLI arguments and a server command."""
    if "--" not in argv:
        return argv, []
    split = argv.index("--")
    return argv[:split], argv[split + 1:]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Everything after the first ``--`` is the stdio server command and is
    stored as ``server_command`` (empty when absent).
    """
    cli_args, server_command = split_server_command(
        list(sys.argv[1:] if argv is None else argv)
    )

    parser = argparse.ArgumentParser(
        prog="asyncmcp",
        description="Talk to MCP servers over stdio",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log transport activity to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("tools", "List tools"),
        ("prompts", "List prompts"),
        ("resources", "List resources"),
        ("ping", "Check that the server responds"),
    ):
        add_target_args(subparsers.add_parser(name, help=help_text))

    call_parser = subparsers.add_parser("call", help="Call a tool")
    call_parser.add_argument("tool", help="Tool name")
    call_parser.add_argument(
        "--args", "-a",
        dest="tool_args",
        default="{}",
        help="Tool arguments as a JSON object (default: {})",
    )
    add_target_args(call_parser)

    prompt_parser = subparsers.add_parser("prompt", help="Get a prompt")
    prompt_parser.add_argument("name", help="Prompt name")
    prompt_parser.add_argument(
        "--args", "-a",
        dest="prompt_args",
        default="{}",
        help="Prompt arguments as a JSON object (default: {})",
    )
    add_target_args(prompt_parser)

    read_parser = subparsers.add_parser("read", help="Read a resource")
    read_parser.add_argument("uri", help="Resource URI")
    add_target_args(read_parser)

    args = parser.parse_args(cli_args)
    args.server_command = server_command
    return args
