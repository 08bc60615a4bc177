"""Integration tests for the stdio transport against real subprocesses."""

import asyncio
import signal
import sys
import textwrap
from pathlib import Path

import pytest

from asyncmcp.mcp import (
    MCPClient,
    MCPProcessExitedError,
    MCPProtocolError,
    MCPTransportClosedError,
    MCPTransportError,
    StdioTransport,
    TransportState,
)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def python_script(source: str) -> list[str]:
    return [sys.executable, "-c", textwrap.dedent(source)]


@pytest.fixture
async def mcp_client():
    """Create MCP client connected to the test server subprocess."""
    client = MCPClient(
        command=[sys.executable, "-m", "asyncmcp.mcp.test_server"],
        cwd=str(PROJECT_ROOT),
    )
    async with client:
        yield client


class TestMCPClientIntegration:
    """Test MCP client with the actual test server."""

    async def test_initialization(self, mcp_client: MCPClient) -> None:
        assert mcp_client.is_initialized
        assert mcp_client.server_info == {"name": "asyncmcp-test-server", "version": "1.0.0"}

    async def test_list_and_call(self, mcp_client: MCPClient) -> None:
        tools = await mcp_client.list_tools()
        assert {t["name"] for t in tools} == {"echo", "get_time", "add", "slow_operation"}

        result = await mcp_client.call_tool("echo", {"message": "hello world"})
        assert result["content"][0]["text"] == "hello world"

    async def test_async_tool(self, mcp_client: MCPClient) -> None:
        result = await mcp_client.call_tool("slow_operation", {"duration": 0.05})
        assert result["content"][0]["text"] == "Completed after 0.05s"

    async def test_concurrent_requests(self, mcp_client: MCPClient) -> None:
        results = await asyncio.gather(
            *(mcp_client.call_tool("add", {"a": i, "b": 1}) for i in range(10))
        )
        assert [r["content"][0]["text"] for r in results] == [str(i + 1) for i in range(10)]

    async def test_resources_and_prompts(self, mcp_client: MCPClient) -> None:
        result = await mcp_client.read_resource("file:///config.json")
        assert '"debug": true' in result["contents"][0]["text"]

        prompt = await mcp_client.get_prompt("summarize", {"max_length": 50})
        assert "max 50 words" in prompt["messages"][0]["content"]["text"]

    async def test_server_error(self, mcp_client: MCPClient) -> None:
        with pytest.raises(MCPProtocolError) as exc_info:
            await mcp_client.read_resource("file:///missing")
        assert exc_info.value.code == -32602

    async def test_shutdown_stops_server(self) -> None:
        client = MCPClient(
            command=[sys.executable, "-m", "asyncmcp.mcp.test_server"],
            cwd=str(PROJECT_ROOT),
        )
        await client.initialize()
        transport = client.transport
        assert isinstance(transport, StdioTransport)
        assert transport.is_connected

        await asyncio.wait_for(client.shutdown(), timeout=10)

        assert transport.state is TransportState.CLOSED
        assert transport.returncode is not None
        with pytest.raises(MCPTransportClosedError):
            await client.ping()


class TestStdioTransportProcesses:
    async def test_canned_reply(self) -> None:
        """A server answering every line with id 1 satisfies the first request."""
        transport = StdioTransport(python_script("""
            import sys
            for line in sys.stdin:
                sys.stdout.write('{"jsonrpc":"2.0","id":1,"result":{"ok":true}}\\n')
                sys.stdout.flush()
        """))
        async with transport:
            assert await asyncio.wait_for(transport.send_request("ping"), timeout=10) == {"ok": True}

    async def test_exit_fails_pending_request(self) -> None:
        transport = StdioTransport(python_script("""
            import sys
            sys.stdin.readline()
            sys.exit(3)
        """))

        with pytest.raises(MCPProcessExitedError) as exc_info:
            await asyncio.wait_for(transport.send_request("ping"), timeout=10)

        assert exc_info.value.exit_code == 3
        assert "code 3" in str(exc_info.value)
        assert transport.pending_count == 0
        with pytest.raises(MCPTransportClosedError, match="MCP server process has exited"):
            await transport.send_request("ping")
        await transport.close()

    async def test_noise_on_stdout_and_stderr(self) -> None:
        transport = StdioTransport(python_script("""
            import json, sys
            print("server starting...", flush=True)
            print("diagnostics here", file=sys.stderr, flush=True)
            request = json.loads(sys.stdin.readline())
            print(json.dumps({"jsonrpc": "2.0", "method": "notifications/message"}), flush=True)
            print(json.dumps({"jsonrpc": "2.0", "id": request["id"], "result": "pong"}), flush=True)
            sys.stdin.readline()
        """))
        async with transport:
            assert await asyncio.wait_for(transport.send_request("ping"), timeout=10) == "pong"
            assert transport.discarded_messages == 2
            for _ in range(100):
                if transport.stderr_lines:
                    break
                await asyncio.sleep(0.01)
            assert transport.stderr_lines == ["diagnostics here"]

    @pytest.mark.unix_only
    async def test_close_sends_sigterm(self) -> None:
        """A server that never reads stdin is still stopped by close()."""
        transport = StdioTransport(python_script("""
            import time
            while True:
                time.sleep(1)
        """))
        await transport.start()

        await asyncio.wait_for(transport.close(), timeout=10)
        await transport.close()

        assert transport.returncode == -signal.SIGTERM
        assert transport.state is TransportState.CLOSED

    async def test_command_not_found(self) -> None:
        transport = StdioTransport(["nonexistent_command_xyz_asyncmcp"])
        with pytest.raises(MCPTransportError, match="MCP server command not found"):
            await transport.send_request("ping")
