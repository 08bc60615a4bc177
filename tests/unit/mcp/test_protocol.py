"""Tests for MCP protocol message builders and info types."""

import pytest

from asyncmcp import __version__
from asyncmcp.mcp.protocol import (
    METHOD_INITIALIZED,
    PROTOCOL_VERSION,
    MCPClientInfo,
    MCPServerInfo,
    is_valid_request_id,
    make_notification,
    make_request,
)


class TestMessages:
    def test_request(self) -> None:
        assert make_request(7, "tools/call", {"name": "echo"}) == {
            "jsonrpc": "2.0",
            "id": 7,
            "method": "tools/call",
            "params": {"name": "echo"},
        }

    def test_request_keeps_empty_params(self) -> None:
        """Only None omits params; an empty object is still sent."""
        assert make_request(1, "ping") == {"jsonrpc": "2.0", "id": 1, "method": "ping"}
        assert make_request(1, "ping", {})["params"] == {}

    def test_notification(self) -> None:
        assert make_notification(METHOD_INITIALIZED) == {
            "jsonrpc": "2.0",
            "method": "notifications/initialized",
        }
        assert make_notification("x", {"a": 1})["params"] == {"a": 1}


@pytest.mark.parametrize(
    ("value", "expected"),
    [(1, True), (42, True), (0, False), (-1, False), (True, False), ("1", False), (1.0, False), (None, False)],
)
def test_is_valid_request_id(value: object, expected: bool) -> None:
    assert is_valid_request_id(value) is expected


class TestInfo:
    def test_protocol_version(self) -> None:
        assert PROTOCOL_VERSION == "2025-11-25"

    def test_client_info_defaults(self) -> None:
        assert MCPClientInfo().to_dict() == {"name": "asyncmcp", "version": __version__}

    def test_server_info_from_dict(self) -> None:
        info = MCPServerInfo.from_dict({
            "serverInfo": {"name": "srv", "version": "2.0"},
            "capabilities": {"tools": {}},
        })
        assert info.name == "srv"
        assert info.version == "2.0"
        assert info.capabilities == {"tools": {}}

    def test_server_info_tolerates_missing_fields(self) -> None:
        info = MCPServerInfo.from_dict({"serverInfo": None, "capabilities": None})
        assert info.name == "unknown"
        assert info.version == "unknown"
        assert info.capabilities == {}
