"""MCP transport layer.

Provides transport implementations for MCP communication:
- InProcessTransport: Call an MCP server object living in this process
- StdioTransport: Launch MCP server as subprocess, communicate via stdin/stdout

Both expose the same three operations (send_request, send_notification,
close) so the client never needs to know where the server lives.

The stdio transport speaks newline-delimited JSON-RPC 2.0. A single reader
task owns the inbound buffer and the pending-request table; request callers
only ever insert into the table and wait on their own future.
"""

import asyncio
import concurrent.futures
import inspect
import json
import logging
import os
import shutil
import sys
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from asyncmcp.core.errors import ConfigError
from asyncmcp.core.process import request_termination, spawn_kwargs
from asyncmcp.mcp.errors import (
    MCPAsyncToolError,
    MCPInvalidResponseError,
    MCPProcessExitedError,
    MCPProtocolError,
    MCPTransportClosedError,
    MCPTransportError,
)
from asyncmcp.mcp.protocol import is_valid_request_id, make_notification, make_request

logger = logging.getLogger(__name__)


# Maximum length of a single inbound line. A partial line that grows past
# this is dropped up to its terminating newline and every pending request
# fails with MCPTransportError.
MAX_STDIO_LINE_LENGTH: int = 10 * 1024 * 1024  # 10 MB

# Bytes requested from the server's stdout per read
READ_CHUNK_SIZE: int = 65536

# Environment variables always safe to pass to MCP servers.
# These are essential for subprocess execution but don't contain secrets.
SAFE_ENV_KEYS: frozenset[str] = frozenset({
    # Cross-platform
    "PATH",       # Find executables
    "HOME",       # User home directory (config files)
    "USER",       # Current username
    "LOGNAME",    # Login name (same as USER on most systems)
    "LANG",       # Locale (character encoding)
    "LC_ALL",     # Locale override
    "LC_CTYPE",   # Character classification locale
    "TERM",       # Terminal type
    "SHELL",      # Default shell
    "TMPDIR",     # Temporary directory
    "TMP",
    "TEMP",
    # Windows-specific
    "USERPROFILE",
    "APPDATA",
    "LOCALAPPDATA",
    "PATHEXT",      # Executable extensions (.exe, .cmd, .bat)
    "SYSTEMROOT",   # Required by the Windows C runtime
    "COMSPEC",
})


def build_safe_env(
    explicit_env: dict[str, str] | None = None,
    passthrough: list[str] | None = None,
) -> dict[str, str]:
    """Build the environment for an MCP server subprocess.

    Servers receive only:
    1. Safe system variables (PATH, HOME, etc.)
    2. Host variables named in ``passthrough``
    3. Explicit ``explicit_env`` values (merged last, highest priority)

    Args:
        explicit_env: Explicit env vars declared in config.
        passthrough: Env var names to copy from host environment.

    Returns:
        Environment dict for the subprocess.
    """
    env: dict[str, str] = {}

    for key in SAFE_ENV_KEYS:
        if key in os.environ:
            env[key] = os.environ[key]

    if passthrough:
        for key in passthrough:
            if key in os.environ:
                env[key] = os.environ[key]

    if explicit_env:
        env.update(explicit_env)

    return env


# Commands that should be translated on Windows when the original is not found
_WINDOWS_COMMAND_ALIASES: dict[str, str] = {
    "python3": "python",
    "pip3": "pip",
}


def resolve_command(command: list[str]) -> list[str]:
    """Resolve command for cross-platform execution.

    On Windows, executable extensions (.cmd, .bat, .exe) are not resolved by
    create_subprocess_exec, so shutil.which is used to find the real path,
    falling back to a Windows alias (python3 -> python). On other platforms
    the command is returned unchanged.

    Args:
        command: Command and arguments list.

    Returns:
        Command list with resolved executable path.
    """
    if sys.platform != "win32" or not command:
        return command

    executable = command[0]

    if any(executable.lower().endswith(ext) for ext in (".exe", ".cmd", ".bat", ".com")):
        return command

    resolved = shutil.which(executable)
    if resolved:
        return [resolved] + command[1:]

    alias = _WINDOWS_COMMAND_ALIASES.get(executable)
    if alias:
        resolved = shutil.which(alias)
        if resolved:
            logger.debug("Resolved %s -> %s on Windows", executable, resolved)
            return [resolved] + command[1:]

    return command


def process_response(response: Any) -> Any:
    """Extract the result from a JSON-RPC response object.

    Args:
        response: Whatever the server produced for a request.

    Returns:
        The ``result`` member (None when absent).

    Raises:
        MCPInvalidResponseError: If there is no response or it is not an object.
        MCPProtocolError: If the response carries an ``error`` object.
    """
    if response is None:
        raise MCPInvalidResponseError("No response from MCP server")
    if not isinstance(response, Mapping):
        raise MCPInvalidResponseError("Invalid response from MCP server")

    error = response.get("error")
    if error is not None:
        raise MCPProtocolError.from_error(error)

    return response.get("result")


class TransportState(Enum):
    """Lifecycle of a transport."""

    UNSTARTED = "unstarted"
    RUNNING = "running"
    CLOSING = "closing"
    CLOSED = "closed"


class MCPTransport(ABC):
    """Abstract base class for MCP transports.

    Each instance owns its own request id counter: ids start at 1, increase
    strictly and are never reused. Notifications do not consume ids.
    """

    def __init__(self) -> None:
        self._last_request_id = 0

    def next_request_id(self) -> int:
        """Allocate the next JSON-RPC request id."""
        self._last_request_id += 1
        return self._last_request_id

    @abstractmethod
    async def send_request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Send a request and wait for its result.

        Raises:
            MCPProtocolError: If the server answers with an error object.
            MCPTransportError: If the request could not be delivered or answered.
        """
        ...

    @abstractmethod
    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification. Returns once transmitted."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release transport resources. Safe to call more than once."""
        ...

    @property
    def is_closed(self) -> bool:
        """Whether new calls are refused."""
        return False

    async def __aenter__(self) -> "MCPTransport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Context manager exit - close."""
        await self.close()


class InProcessTransport(MCPTransport):
    """Call an MCP server object in the same process.

    The server exposes ``handle(request, context) -> response``. The return
    value may be a response dict or something awaitable (coroutine,
    asyncio future, concurrent future) that settles to one.

    An awaitable response is waited on inside send_request before the result
    is extracted. This is the one deliberate synchronisation point in the
    package: asynchronous tool work on the server side is flattened into a
    single call from the client's point of view. ``deferred_timeout`` bounds
    that wait.

    Attributes:
        server: The server object being called.
    """

    def __init__(self, server: Any, deferred_timeout: float | None = None) -> None:
        """Initialize InProcessTransport.

        Args:
            server: Object with a ``handle(request, context)`` method.
            deferred_timeout: Maximum seconds to wait for an awaitable response.
                None waits indefinitely.

        Raises:
            ConfigError: If no server is given.
        """
        if server is None:
            raise ConfigError("server is required")
        super().__init__()
        self.server = server
        self._deferred_timeout = deferred_timeout

    async def send_request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        request = make_request(self.next_request_id(), method, params)

        try:
            response = self.server.handle(request, {})
        except Exception as e:
            raise MCPTransportError(f"MCP server handler failed: {e}") from e

        if _is_deferred(response):
            response = await self._settle(response)

        return process_response(response)

    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        notification = make_notification(method, params)

        # The return value is discarded; a notification always succeeds
        try:
            response = self.server.handle(notification, {})
            if _is_deferred(response):
                await self._settle(response)
        except Exception as e:
            logger.debug("Ignoring server failure for notification %s: %s", method, e)

    async def close(self) -> None:
        """No-op: there is no external resource to release."""

    async def _settle(self, deferred: Any) -> Any:
        """Wait for a deferred server response to settle.

        Raises:
            MCPAsyncToolError: If the deferred value fails or the wait times out.
        """
        if isinstance(deferred, concurrent.futures.Future):
            deferred = asyncio.wrap_future(deferred)

        if self._deferred_timeout is None:
            try:
                return await deferred
            except Exception as e:
                raise MCPAsyncToolError(e) from e

        try:
            return await asyncio.wait_for(deferred, timeout=self._deferred_timeout)
        except TimeoutError as e:
            raise MCPAsyncToolError(
                f"timed out after {self._deferred_timeout}s"
            ) from e
        except Exception as e:
            raise MCPAsyncToolError(e) from e


def _is_deferred(value: Any) -> bool:
    return inspect.isawaitable(value) or isinstance(value, concurrent.futures.Future)


class StdioTransport(MCPTransport):
    """Launch MCP server as subprocess, communicate via stdin/stdout.

    The server is spawned lazily on first use. Every outbound message is one
    line of JSON written in a single write. Inbound lines are read by one
    background task that correlates responses to pending requests by id.

    Lines that are not JSON objects, carry no id, or reference an id that
    is not pending are discarded (see ``discarded_messages``). When the
    process exits, every pending request fails with
    ``MCPProcessExitedError`` and the transport refuses further calls.

    SECURITY: By default, MCP servers receive only safe environment variables
    (PATH, HOME, USER, etc.) - NOT the full host environment.

    Attributes:
        command: Command and arguments to launch the server.
    """

    def __init__(
        self,
        command: list[str],
        env: dict[str, str] | None = None,
        env_passthrough: list[str] | None = None,
        cwd: str | None = None,
    ):
        """Initialize StdioTransport.

        Args:
            command: Command and arguments to launch the MCP server.
            env: Explicit environment variables (highest priority).
            env_passthrough: Names of host env vars to pass through.
            cwd: Working directory for the subprocess.

        Raises:
            ConfigError: If command is empty.
        """
        if not command:
            raise ConfigError("command is required")
        super().__init__()
        self.command = list(command)
        self._explicit_env = env
        self._env_passthrough = env_passthrough
        self._cwd = cwd

        self._state = TransportState.UNSTARTED
        self._process: asyncio.subprocess.Process | None = None
        self._start_lock = asyncio.Lock()
        # Serializes write+drain so lines go out in call order
        self._write_lock = asyncio.Lock()
        self._reader_task: asyncio.Task[None] | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._close_waiter: asyncio.Future[None] | None = None

        # Owned by the reader task (and send_request for inserts)
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._buffer = bytearray()
        self._skipping_oversized_line = False
        self._discarded_messages = 0

        # Last 20 stderr lines for error context
        self._stderr_buffer: deque[str] = deque(maxlen=20)

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Spawn the server process if it has not been started yet.

        Raises:
            MCPTransportClosedError: If the transport was already closed.
            MCPTransportError: If the command cannot be started.
        """
        async with self._start_lock:
            if self._state is not TransportState.UNSTARTED:
                return

            env = build_safe_env(
                explicit_env=self._explicit_env,
                passthrough=self._env_passthrough,
            )
            resolved_command = resolve_command(self.command)

            try:
                self._process = await asyncio.create_subprocess_exec(
                    *resolved_command,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=env,
                    cwd=self._cwd,
                    **spawn_kwargs(),
                )
            except FileNotFoundError as e:
                raise MCPTransportError(f"MCP server command not found: {self.command[0]}") from e
            except Exception as e:
                raise MCPTransportError(f"Failed to start MCP server: {e}") from e

            self._state = TransportState.RUNNING
            logger.debug("Started MCP server [%s] (pid %s)", self.command[0], self._process.pid)

            self._reader_task = asyncio.create_task(self._read_stdout())
            self._stderr_task = asyncio.create_task(self._read_stderr())

    async def close(self) -> None:
        """Ask the server to terminate and wait until it has exited.

        Sends SIGTERM (not a kill) to a running server and returns once the
        exit has been observed. Closing an unstarted, closing or already
        exited transport returns immediately and never re-signals.
        """
        if self._state is TransportState.UNSTARTED:
            async with self._start_lock:
                if self._state is TransportState.UNSTARTED:
                    self._state = TransportState.CLOSED
                    return

        if self._state is not TransportState.RUNNING or self._process is None:
            return

        self._state = TransportState.CLOSING
        self._close_waiter = asyncio.get_running_loop().create_future()
        logger.debug("Terminating MCP server [%s]", self.command[0])
        request_termination(self._process)

        await asyncio.shield(self._close_waiter)
        await self._stop_stderr_reader()

    async def _stop_stderr_reader(self) -> None:
        if self._stderr_task is None:
            return
        self._stderr_task.cancel()
        try:
            await self._stderr_task
        except asyncio.CancelledError:
            pass
        self._stderr_task = None

    # -- outbound ------------------------------------------------------------

    async def send_request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        await self._ensure_running()

        request_id = self.next_request_id()
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self._write(make_request(request_id, method, params))
        except MCPTransportError:
            if future.done():
                # Answered, or failed by the exit handler, while the write was pending
                return await future
            self._pending.pop(request_id, None)
            future.cancel()
            raise
        except BaseException:
            self._pending.pop(request_id, None)
            _discard_future(future)
            raise

        try:
            return await future
        except asyncio.CancelledError:
            # Caller gave up; the response, if it ever arrives, is discarded
            self._pending.pop(request_id, None)
            raise

    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        await self._ensure_running()
        await self._write(make_notification(method, params))

    async def _ensure_running(self) -> None:
        if self._state is TransportState.UNSTARTED:
            await self.start()
        if self._state is not TransportState.RUNNING:
            raise MCPTransportClosedError()

    async def _write(self, message: dict[str, Any]) -> None:
        """Write one framed JSON-RPC message to the server's stdin."""
        if self._process is None or self._process.stdin is None:
            raise MCPTransportError("Transport not connected")

        async with self._write_lock:
            if self._state is not TransportState.RUNNING:
                raise MCPTransportClosedError()
            try:
                data = json.dumps(message, separators=(",", ":")) + "\n"
                self._process.stdin.write(data.encode("utf-8"))
                await self._process.stdin.drain()
            except Exception as e:
                raise MCPTransportError(f"Failed to send message: {e}") from e

    # -- inbound -------------------------------------------------------------

    async def _read_stdout(self) -> None:
        """Pump stdout into the line buffer, then handle process exit."""
        process = self._process
        if process is None or process.stdout is None:
            return

        try:
            while True:
                chunk = await process.stdout.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                self._feed(chunk)
        except Exception as e:
            logger.debug("Stdout reader stopped: %s", e)

        returncode = await process.wait()
        self._on_process_exit(returncode)

    def _feed(self, data: bytes) -> None:
        """Fold a chunk of server output into the buffer and dispatch complete lines."""
        search_from = len(self._buffer)
        self._buffer.extend(data)

        while True:
            newline_idx = self._buffer.find(b"\n", search_from)
            if newline_idx < 0:
                break
            search_from = 0

            line = bytes(self._buffer[:newline_idx])
            del self._buffer[: newline_idx + 1]

            if self._skipping_oversized_line:
                # Tail of a line already dropped for being too long
                self._skipping_oversized_line = False
                continue

            if line.endswith(b"\r"):
                line = line[:-1]
            if not line:
                continue

            if len(line) > MAX_STDIO_LINE_LENGTH:
                self._drop_oversized_line()
                continue

            self._dispatch_line(line)

        if len(self._buffer) > MAX_STDIO_LINE_LENGTH:
            if not self._skipping_oversized_line:
                self._drop_oversized_line()
            self._buffer.clear()
            self._skipping_oversized_line = True

    def _drop_oversized_line(self) -> None:
        """Discard a line over the limit and fail every pending request."""
        logger.warning(
            "MCP server [%s] line exceeds maximum length (%d bytes), discarding it",
            self.command[0],
            MAX_STDIO_LINE_LENGTH,
        )
        self._discarded_messages += 1
        # The dropped line may have been any pending request's answer
        message = f"MCP server line exceeds maximum length ({MAX_STDIO_LINE_LENGTH} bytes)"
        self._fail_pending(lambda: MCPTransportError(message))

    def _fail_pending(self, make_error: Callable[[], Exception]) -> None:
        """Fail and forget every request still waiting for a response."""
        pending = self._pending
        self._pending = {}
        for future in pending.values():
            if not future.done():
                future.set_exception(make_error())

    def _dispatch_line(self, line: bytes) -> None:
        """Parse one line and complete the matching pending request."""
        try:
            message = json.loads(line)
        except ValueError:
            self._discard("unparseable line", line)
            return

        if not isinstance(message, dict):
            self._discard("not a JSON object", line)
            return

        request_id = message.get("id")
        if request_id is None:
            self._discard(f"no id (method={message.get('method')})", line)
            return

        if "method" in message or not is_valid_request_id(request_id):
            # Server-initiated request; this client does not serve any
            self._discard(f"not a response to us (id={request_id!r})", line)
            return

        future = self._pending.pop(request_id, None)
        if future is None:
            self._discard(f"unknown id {request_id}", line)
            return
        if future.done():
            return

        error = message.get("error")
        if error is not None:
            future.set_exception(MCPProtocolError.from_error(error))
        else:
            future.set_result(message.get("result"))

    def _discard(self, reason: str, line: bytes) -> None:
        self._discarded_messages += 1
        logger.debug(
            "Discarded MCP message from [%s] (%s): %s",
            self.command[0],
            reason,
            line[:200].decode("utf-8", errors="replace"),
        )

    def _on_process_exit(self, returncode: int | None) -> None:
        """Fail everything in flight and mark the transport closed."""
        self._state = TransportState.CLOSED
        logger.info("MCP server [%s] exited (code %s)", self.command[0], returncode)

        self._fail_pending(lambda: MCPProcessExitedError(returncode))

        self._buffer.clear()
        self._skipping_oversized_line = False

        if self._process is not None and self._process.stdin is not None:
            try:
                self._process.stdin.close()
            except Exception as e:
                logger.debug("Stdin close error (expected during shutdown): %s", e)

        if self._close_waiter is not None and not self._close_waiter.done():
            self._close_waiter.set_result(None)

    async def _read_stderr(self) -> None:
        """Drain stderr; lines are logged and kept for context, never parsed."""
        if self._process is None or self._process.stderr is None:
            return

        while True:
            try:
                line = await self._process.stderr.readline()
                if not line:
                    break
                text = line.decode(errors="replace").rstrip()
                if text:
                    self._stderr_buffer.append(text)
                    logger.debug("MCP stderr [%s]: %s", self.command[0], text)
            except Exception as e:
                logger.debug("Stderr reader stopped: %s", e)
                break

    # -- introspection -------------------------------------------------------

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._state in (TransportState.CLOSING, TransportState.CLOSED)

    @property
    def is_connected(self) -> bool:
        """Check if the server process is running."""
        return self._state is TransportState.RUNNING

    @property
    def pending_count(self) -> int:
        """Number of requests still waiting for a response."""
        return len(self._pending)

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    @property
    def discarded_messages(self) -> int:
        """Count of inbound lines dropped as noise or unmatched."""
        return self._discarded_messages

    @property
    def stderr_lines(self) -> list[str]:
        """Return the last 20 lines of stderr output from the MCP server."""
        return list(self._stderr_buffer)


def _discard_future(future: asyncio.Future[Any]) -> None:
    """Mark a future abandoned without triggering 'exception never retrieved'."""
    if future.done():
        if not future.cancelled():
            future.exception()
    else:
        future.cancel()
