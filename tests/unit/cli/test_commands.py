"""Tests for CLI argument parsing and command execution."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from asyncmcp.cli.arg_parser import parse_args, split_server_command
from asyncmcp.cli.commands import build_client, main, run_command
from asyncmcp.core.errors import ConfigError
from asyncmcp.mcp.client import MCPClient
from asyncmcp.mcp.test_server import TestServer
from asyncmcp.mcp.transport import StdioTransport


class TestParseArgs:
    def test_server_command_after_double_dash(self) -> None:
        args = parse_args(["tools", "--", "python", "-m", "server", "--flag"])
        assert args.command == "tools"
        assert args.server_command == ["python", "-m", "server", "--flag"]

    def test_call_with_args_and_command(self) -> None:
        """Options before '--' are not swallowed into the server command."""
        args = parse_args(["call", "echo", "--args", '{"message": "hi"}', "--", "srv"])
        assert args.tool == "echo"
        assert args.tool_args == '{"message": "hi"}'
        assert args.server_command == ["srv"]

    def test_named_server(self) -> None:
        args = parse_args(["-v", "read", "file:///a", "--server", "test", "-c", "x.json"])
        assert args.verbose
        assert args.uri == "file:///a"
        assert args.server == "test"
        assert args.config == Path("x.json")
        assert args.server_command == []

    def test_defaults(self) -> None:
        args = parse_args(["prompt", "greeting"])
        assert args.prompt_args == "{}"
        assert args.config is None
        assert not args.verbose

    def test_subcommand_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])

    def test_split_only_first_separator(self) -> None:
        assert split_server_command(["ping", "--", "a", "--", "b"]) == (["ping"], ["a", "--", "b"])


class TestBuildClient:
    def write_config(self, tmp_path: Path, servers: dict) -> Path:
        path = tmp_path / "mcp.json"
        path.write_text(json.dumps({"mcpServers": servers}), encoding="utf-8")
        return path

    def test_command(self) -> None:
        client = build_client(parse_args(["ping", "--", "srv", "--stdio"]))
        assert client._command == ["srv", "--stdio"]

    def test_named_server(self, tmp_path: Path) -> None:
        path = self.write_config(tmp_path, {
            "a": {"command": "srv-a"},
            "b": {"command": "srv-b", "args": ["--x"]},
        })
        client = build_client(parse_args(["ping", "-c", str(path), "-s", "b"]))
        assert isinstance(client._ensure_transport(), StdioTransport)
        assert client.transport.command == ["srv-b", "--x"]

    def test_single_enabled_server_is_default(self, tmp_path: Path) -> None:
        path = self.write_config(tmp_path, {
            "a": {"command": "srv-a"},
            "b": {"command": "srv-b", "enabled": False},
        })
        client = build_client(parse_args(["ping", "-c", str(path)]))
        assert client._command == ["srv-a"]

    def test_disabled_named_server(self, tmp_path: Path) -> None:
        path = self.write_config(tmp_path, {"a": {"command": "srv-a", "enabled": False}})
        with pytest.raises(ConfigError, match="is disabled"):
            build_client(parse_args(["ping", "-c", str(path), "-s", "a"]))

    def test_ambiguous_selection(self, tmp_path: Path) -> None:
        path = self.write_config(tmp_path, {"a": {"command": "a"}, "b": {"command": "b"}})
        with pytest.raises(ConfigError, match="Select a server"):
            build_client(parse_args(["ping", "-c", str(path)]))


class TestRunCommand:
    @pytest.fixture(autouse=True)
    def in_process_client(self):
        with patch(
            "asyncmcp.cli.commands.build_client",
            side_effect=lambda args: MCPClient(server=TestServer()),
        ) as mock:
            yield mock

    async def test_tools(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert await run_command(parse_args(["tools"])) == 0
        out = capsys.readouterr().out
        assert "echo" in out
        assert "asyncmcp-test-server" in out

    async def test_call(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = await run_command(parse_args(["call", "add", "--args", '{"a": 2, "b": 3}']))
        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["content"][0]["text"] == "5"

    async def test_read(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert await run_command(parse_args(["read", "file:///readme.txt"])) == 0
        assert "Test Project" in capsys.readouterr().out

    async def test_prompt(self, capsys: pytest.CaptureFixture[str]) -> None:
        args = parse_args(["prompt", "code_review", "--args", '{"language": "Python"}'])
        assert await run_command(args) == 0
        assert "Review this Python code." in capsys.readouterr().out

    async def test_ping(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert await run_command(parse_args(["ping"])) == 0
        assert "asyncmcp-test-server 1.0.0: ok" in capsys.readouterr().out

    async def test_server_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert await run_command(parse_args(["call", "missing"])) == 1
        assert "Error: MCP error -32602: Unknown tool: missing" in capsys.readouterr().err

    async def test_bad_json_arguments(
        self, in_process_client, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await run_command(parse_args(["call", "echo", "--args", "[1]"])) == 1
        assert "--args must be a JSON object" in capsys.readouterr().err
        in_process_client.assert_not_called()

    async def test_malformed_json_starts_no_server(
        self, in_process_client, capsys: pytest.CaptureFixture[str]
    ) -> None:
        args = parse_args(["prompt", "greeting", "--args", "{name: x}"])
        assert await run_command(args) == 1
        assert "Invalid JSON for --args" in capsys.readouterr().err
        in_process_client.assert_not_called()


def test_main_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["ping", "--", "nonexistent_command_xyz_asyncmcp"])
    assert exc_info.value.code == 1
    assert "MCP server command not found" in capsys.readouterr().err
