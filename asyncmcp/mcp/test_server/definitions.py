"""Tool, resource, and prompt catalogue served by the MCP test server."""

import asyncio
from datetime import datetime
from typing import Any

from asyncmcp.mcp.protocol import JSONRPC_VERSION, PROTOCOL_VERSION


SERVER_NAME = "asyncmcp-test-server"
SERVER_VERSION = "1.0.0"


# JSON-RPC error codes
PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


def _tool(
    name: str,
    description: str,
    properties: dict[str, Any] | None = None,
    required: list[str] | None = None,
) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        schema["required"] = required
    return {"name": name, "description": description, "inputSchema": schema}


def _argument(name: str, description: str, required: bool = False) -> dict[str, Any]:
    return {"name": name, "description": description, "required": required}


TOOLS: list[dict[str, Any]] = [
    _tool(
        "echo",
        "Return the message unchanged",
        {"message": {"type": "string", "description": "Text to send back"}},
        ["message"],
    ),
    _tool("get_time", "Current local time in ISO 8601 format"),
    _tool(
        "add",
        "Sum of a and b",
        {"a": {"type": "number"}, "b": {"type": "number"}},
        ["a", "b"],
    ),
    _tool(
        "slow_operation",
        "Sleep, then report completion (runs asynchronously)",
        {
            "duration": {"type": "number", "description": "Seconds to sleep", "default": 0.01},
            "fail": {"type": "boolean", "description": "Raise instead of returning"},
        },
    ),
]


# uri -> (name, mime type, body)
_RESOURCE_TABLE: dict[str, tuple[str, str, str]] = {
    "file:///readme.txt": (
        "readme",
        "text/plain",
        "# Test Project\n\nServed by the asyncmcp test server.\n",
    ),
    "file:///config.json": (
        "settings",
        "application/json",
        '{"server": "asyncmcp-test-server", "debug": true}',
    ),
    "file:///data/users.csv": (
        "users",
        "text/csv",
        "id,name\n1,Alice\n2,Bob\n",
    ),
}


RESOURCES: list[dict[str, Any]] = [
    {"uri": uri, "name": name, "mimeType": mime_type}
    for uri, (name, mime_type, _) in _RESOURCE_TABLE.items()
]


PROMPTS: list[dict[str, Any]] = [
    {
        "name": "greeting",
        "description": "Ask for a greeting addressed to someone",
        "arguments": [
            _argument("name", "Who to greet", required=True),
            _argument("formal", "Set for a formal tone"),
        ],
    },
    {
        "name": "code_review",
        "description": "Ask for a code review",
        "arguments": [_argument("language", "Language of the code", required=True)],
    },
    {
        "name": "summarize",
        "description": "Ask for a summary",
        "arguments": [_argument("max_length", "Word limit for the summary")],
    },
]


def make_response(request_id: Any, result: Any) -> dict[str, Any]:
    """Create a JSON-RPC success response."""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def make_error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    """Create a JSON-RPC error response."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": {"code": code, "message": message},
    }


def make_tool_result(text: str, is_error: bool = False) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": text}], "isError": is_error}


def initialize_result() -> dict[str, Any]:
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {
            "tools": {},
            "resources": {"subscribe": False, "listChanged": False},
            "prompts": {"listChanged": False},
        },
        "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
    }


async def slow_operation(duration: float, fail: bool) -> dict[str, Any]:
    """Async tool body: the result is only known after awaiting."""
    await asyncio.sleep(duration)
    if fail:
        raise RuntimeError("slow_operation failed on request")
    return make_tool_result(f"Completed after {duration}s")


def handle_tools_call(tool_name: str, args: dict[str, Any]) -> Any:
    """Handle tools/call. Returns a result dict, or a coroutine for async tools.

    Raises:
        ValueError: For unknown tools.
    """
    if tool_name == "echo":
        return make_tool_result(str(args.get("message", "")))
    elif tool_name == "get_time":
        return make_tool_result(datetime.now().isoformat())
    elif tool_name == "add":
        return make_tool_result(str(args.get("a", 0) + args.get("b", 0)))
    elif tool_name == "slow_operation":
        return slow_operation(float(args.get("duration", 0.01)), bool(args.get("fail", False)))
    raise ValueError(f"Unknown tool: {tool_name}")


def handle_resources_read(uri: str) -> dict[str, Any]:
    """Handle resources/read request."""
    if uri not in _RESOURCE_TABLE:
        raise ValueError(f"Resource not found: {uri}")

    _, mime_type, body = _RESOURCE_TABLE[uri]
    return {"contents": [{"uri": uri, "mimeType": mime_type, "text": body}]}


def handle_prompts_get(name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
    """Handle prompts/get request."""
    prompt = next((p for p in PROMPTS if p["name"] == name), None)
    if not prompt:
        raise ValueError(f"Prompt not found: {name}")

    args = arguments or {}
    if name == "greeting":
        tone = "Use formal language." if args.get("formal") else "Be casual and friendly."
        text = f"Please greet {args.get('name', 'friend')}. {tone}"
    elif name == "code_review":
        text = f"Review this {args.get('language', 'code')} code."
    else:
        max_length = args.get("max_length")
        suffix = f" (max {max_length} words)" if max_length else ""
        text = f"Summarize the following text{suffix}:"

    return {
        "description": prompt["description"],
        "messages": [{"role": "user", "content": {"type": "text", "text": text}}],
    }
