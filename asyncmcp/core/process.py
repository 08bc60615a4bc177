"""Cross-platform process signalling.

MCP server subprocesses are started in their own process group (Unix) or
console process group (Windows) so that a termination request reaches the
server and anything it spawned:
- Unix: SIGTERM to the process group
- Windows: CTRL_BREAK_EVENT to the process group

Only the polite signal is sent. Callers wait for the exit themselves.
"""

import logging
import os
import signal
import subprocess
import sys
from asyncio.subprocess import Process
from typing import Any

logger = logging.getLogger(__name__)

# Windows-specific creation flags (only defined on Windows)
if sys.platform == "win32":
    WINDOWS_CREATIONFLAGS = (
        subprocess.CREATE_NEW_PROCESS_GROUP |
        subprocess.CREATE_NO_WINDOW
    )
else:
    WINDOWS_CREATIONFLAGS = 0


def spawn_kwargs() -> dict[str, Any]:
    """Return platform-specific keyword arguments for create_subprocess_exec."""
    if sys.platform == "win32":
        # CREATE_NO_WINDOW prevents a cmd.exe window from flashing
        return {"creationflags": WINDOWS_CREATIONFLAGS}
    # start_new_session gives the server its own process group
    return {"start_new_session": True}


def request_termination(process: Process) -> None:
    """Ask a subprocess (and its process group) to terminate.

    Sends SIGTERM on Unix and CTRL_BREAK_EVENT on Windows, falling back to
    ``process.terminate()`` when the group cannot be signalled. A process
    that has already gone away is ignored.

    Args:
        process: The asyncio subprocess to signal.
    """
    pid = process.pid
    if pid is None:
        _terminate_single(process)
        return

    if sys.platform == "win32":
        try:
            os.kill(pid, signal.CTRL_BREAK_EVENT)  # type: ignore[attr-defined]
            logger.debug("Sent CTRL_BREAK_EVENT to process %d", pid)
            return
        except (ProcessLookupError, OSError, AttributeError):
            pass
    else:
        try:
            pgid = os.getpgid(pid)
            os.killpg(pgid, signal.SIGTERM)
            logger.debug("Sent SIGTERM to process group %d", pgid)
            return
        except (ProcessLookupError, PermissionError, OSError):
            pass

    _terminate_single(process)


def _terminate_single(process: Process) -> None:
    try:
        process.terminate()
        logger.debug("Sent terminate to process %s", process.pid)
    except ProcessLookupError:
        pass
