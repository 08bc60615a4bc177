"""Fixtures for MCP transport tests."""

from collections.abc import AsyncIterator, Iterator
from unittest.mock import AsyncMock, patch

import pytest
from fake_process import FakeProcess, settle


@pytest.fixture
async def fake_process() -> AsyncIterator[FakeProcess]:
    process = FakeProcess()
    yield process
    # Let reader tasks finish before the loop goes away
    if process.returncode is None:
        process.exit(0)
    await settle()


@pytest.fixture
def spawn(fake_process: FakeProcess) -> Iterator[AsyncMock]:
    """Patch subprocess creation to hand out the fake process."""
    mock = AsyncMock(return_value=fake_process)
    with patch("asyncmcp.mcp.transport.asyncio.create_subprocess_exec", mock):
        yield mock
