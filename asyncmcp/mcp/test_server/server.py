"""MCP test server.

``TestServer.handle(request, context)`` is the in-process call boundary used
by ``InProcessTransport``. ``run_server()`` exposes the same server over
stdio using newline-delimited JSON-RPC 2.0.
"""

import asyncio
import inspect
import json
import sys
from typing import Any

from asyncmcp.mcp.test_server.definitions import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    PROMPTS,
    RESOURCES,
    TOOLS,
    handle_prompts_get,
    handle_resources_read,
    handle_tools_call,
    initialize_result,
    make_error,
    make_response,
)


class TestServer:
    """Full-featured MCP server for exercising the client.

    Requests are answered synchronously except ``tools/call`` on the
    ``slow_operation`` tool, which returns a coroutine resolving to the
    response.

    Attributes:
        notifications: Methods of every notification received, in order.
        initialized: True once ``notifications/initialized`` has arrived.
    """

    __test__ = False  # not a pytest test class

    def __init__(self) -> None:
        self.notifications: list[str] = []
        self.initialized = False

    def handle(self, request: dict[str, Any], context: dict[str, Any]) -> Any:
        """Handle one JSON-RPC message. Returns None for notifications."""
        method = request.get("method", "")
        params = request.get("params") or {}
        request_id = request.get("id")

        if request_id is None:
            self.notifications.append(method)
            if method == "notifications/initialized":
                self.initialized = True
            return None

        try:
            result = self._dispatch(method, params)
        except LookupError:
            return make_error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")
        except ValueError as e:
            return make_error(request_id, INVALID_PARAMS, str(e))

        if inspect.isawaitable(result):
            return self._respond_later(request_id, result)
        return make_response(request_id, result)

    def _dispatch(self, method: str, params: dict[str, Any]) -> Any:
        if method == "initialize":
            return initialize_result()
        elif method == "ping":
            return {}
        elif method == "tools/list":
            return {"tools": TOOLS}
        elif method == "tools/call":
            return handle_tools_call(params.get("name", ""), params.get("arguments") or {})
        elif method == "resources/list":
            return {"resources": RESOURCES}
        elif method == "resources/read":
            return handle_resources_read(params.get("uri", ""))
        elif method == "prompts/list":
            return {"prompts": PROMPTS}
        elif method == "prompts/get":
            return handle_prompts_get(params.get("name", ""), params.get("arguments"))
        raise LookupError(method)

    async def _respond_later(self, request_id: Any, pending: Any) -> dict[str, Any]:
        return make_response(request_id, await pending)


async def run_server() -> None:
    """Main server loop - read from stdin, write to stdout."""
    server = TestServer()

    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            break
        if not line.strip():
            continue

        try:
            request = json.loads(line)
        except json.JSONDecodeError:
            request = None
        if not isinstance(request, dict):
            print(json.dumps(make_error(None, PARSE_ERROR, "Parse error")), flush=True)
            continue

        try:
            response = server.handle(request, {})
            if inspect.isawaitable(response):
                response = await response
        except Exception as e:
            response = make_error(request.get("id"), INTERNAL_ERROR, f"Internal error: {e}")

        if response is not None:
            print(json.dumps(response, separators=(",", ":")), flush=True)


def main() -> None:
    """Entry point."""
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
