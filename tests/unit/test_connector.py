"""Unit tests for the MCP transport connectors."""

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from toolchat_server.errors import ServerConnectionError, ToolExecutionError
from toolchat_server.servers import (
    ServerConnection,
    connect_all,
    connect_server,
    parse_mcp_config,
)


class FakeSession:
    """Stand-in for mcp.ClientSession used as an async context manager."""

    instances: list["FakeSession"] = []

    def __init__(self, read, write):
        self.read = read
        self.write = write
        self.initialize = AsyncMock()
        self.closed = False
        FakeSession.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True


@asynccontextmanager
async def fake_transport(*args, **kwargs):
    yield ("read-stream", "write-stream")


@asynccontextmanager
async def failing_transport(*args, **kwargs):
    raise OSError("No such file or directory: 'missing-server'")
    yield  # pragma: no cover


@pytest.fixture(autouse=True)
def reset_sessions():
    FakeSession.instances = []
    yield


@pytest.fixture
def mock_stdio():
    with patch(
        "toolchat_server.servers.connector.stdio_client",
        MagicMock(side_effect=fake_transport),
    ) as mock:
        yield mock


@pytest.fixture
def mock_sse():
    with patch(
        "toolchat_server.servers.connector.sse_client",
        MagicMock(side_effect=fake_transport),
    ) as mock:
        yield mock


@pytest.fixture
def mock_session():
    with patch("toolchat_server.servers.connector.ClientSession", FakeSession):
        yield FakeSession


def descriptors(servers):
    return parse_mcp_config({"mcpServers": servers})


@pytest.mark.asyncio
async def test_connect_stdio_server(mock_stdio, mock_sse, mock_session, monkeypatch):
    """Test that a stdio server is spawned with merged environment."""
    monkeypatch.setenv("PATH", "/usr/bin")
    (descriptor,) = descriptors(
        {
            "files": {
                "type": "stdio",
                "command": "uvx",
                "args": ["mcp-files", "--root", "/tmp"],
                "env": {"FILES_DEBUG": "1"},
            }
        }
    )

    async with AsyncExitStack() as stack:
        connection = await connect_server(descriptor, stack)

        assert isinstance(connection, ServerConnection)
        assert connection.name == "files"
        params = mock_stdio.call_args.args[0]
        assert params.command == "uvx"
        assert params.args == ["mcp-files", "--root", "/tmp"]
        assert params.env["FILES_DEBUG"] == "1"
        assert params.env["PATH"] == "/usr/bin"
        mock_sse.assert_not_called()
        mock_session.instances[0].initialize.assert_awaited_once()


@pytest.mark.asyncio
async def test_connect_stdio_without_env_inherits(mock_stdio, mock_session):
    """Test that no env override leaves the default environment in place."""
    (descriptor,) = descriptors(
        {"files": {"type": "stdio", "command": "uvx", "args": ["mcp-files"]}}
    )

    async with AsyncExitStack() as stack:
        await connect_server(descriptor, stack)

    assert mock_stdio.call_args.args[0].env is None


@pytest.mark.asyncio
async def test_connect_sse_server(mock_stdio, mock_sse, mock_session):
    """Test that an SSE server is opened at its URL."""
    (descriptor,) = descriptors(
        {"edgar": {"type": "sse", "url": "http://localhost:8080/sse"}}
    )

    async with AsyncExitStack() as stack:
        connection = await connect_server(descriptor, stack)

    assert connection.name == "edgar"
    assert mock_sse.call_args.args[0] == "http://localhost:8080/sse"
    mock_stdio.assert_not_called()
    assert mock_session.instances[0].closed is True


@pytest.mark.asyncio
async def test_connect_failure_names_server(mock_session):
    """Test that transport failures become ServerConnectionError."""
    (descriptor,) = descriptors(
        {"broken": {"type": "stdio", "command": "missing-server", "args": []}}
    )

    with patch(
        "toolchat_server.servers.connector.stdio_client",
        MagicMock(side_effect=failing_transport),
    ):
        async with AsyncExitStack() as stack:
            with pytest.raises(ServerConnectionError) as exc_info:
                await connect_server(descriptor, stack)

    assert exc_info.value.server_name == "broken"
    assert "broken" in exc_info.value.message
    assert "No such file" in exc_info.value.message


@pytest.mark.asyncio
async def test_connect_handshake_timeout(mock_sse, mock_session):
    """Test that a hanging initialize handshake hits the deadline."""
    (descriptor,) = descriptors({"slow": {"type": "sse", "url": "http://x/sse"}})

    class HangingSession(FakeSession):
        async def __aenter__(self):
            async def hang():
                await asyncio.sleep(10)

            self.initialize = hang
            return self

    with patch("toolchat_server.servers.connector.ClientSession", HangingSession):
        async with AsyncExitStack() as stack:
            with pytest.raises(ServerConnectionError, match="timed out"):
                await connect_server(descriptor, stack, connect_timeout=0.01)


@pytest.mark.asyncio
async def test_connect_all_in_order(mock_stdio, mock_sse, mock_session):
    """Test that every server is connected, in configuration order."""
    configured = descriptors(
        {
            "b": {"type": "sse", "url": "http://b/sse"},
            "a": {"type": "stdio", "command": "a", "args": []},
        }
    )

    async with AsyncExitStack() as stack:
        connections = await connect_all(configured, stack)

    assert list(connections) == ["b", "a"]


@pytest.mark.asyncio
async def test_connect_all_fails_fast(mock_sse, mock_session):
    """Test that the first failure aborts and later servers are not attempted."""
    configured = descriptors(
        {
            "first": {"type": "sse", "url": "http://first/sse"},
            "broken": {"type": "stdio", "command": "missing", "args": []},
            "third": {"type": "sse", "url": "http://third/sse"},
        }
    )

    with patch(
        "toolchat_server.servers.connector.stdio_client",
        MagicMock(side_effect=failing_transport),
    ):
        stack = AsyncExitStack()
        with pytest.raises(ServerConnectionError) as exc_info:
            await connect_all(configured, stack)
        await stack.aclose()

    assert exc_info.value.server_name == "broken"
    assert mock_sse.call_count == 1
    assert len(mock_session.instances) == 1
    assert mock_session.instances[0].closed is True


@pytest.mark.asyncio
async def test_connect_all_requires_servers():
    """Test that an empty server list is an error."""
    async with AsyncExitStack() as stack:
        with pytest.raises(ServerConnectionError, match="No MCP servers"):
            await connect_all([], stack)


class TestServerConnection:
    """Tests for listing and invoking through a live connection."""

    @pytest.mark.asyncio
    async def test_list_tools_passthrough(self):
        session = AsyncMock()
        session.list_tools.return_value = {"tools": []}
        connection = ServerConnection("s", session)

        assert await connection.list_tools() == {"tools": []}

    @pytest.mark.asyncio
    async def test_call_tool_forwards_arguments(self):
        session = AsyncMock()
        session.call_tool.return_value = {"content": []}
        connection = ServerConnection("s", session)

        result = await connection.call_tool("echo", {"text": "hi"})

        assert result == {"content": []}
        session.call_tool.assert_awaited_once_with("echo", arguments={"text": "hi"})

    @pytest.mark.asyncio
    async def test_call_tool_timeout(self):
        session = MagicMock()

        async def slow_call(name, arguments=None):
            await asyncio.sleep(10)

        session.call_tool = slow_call
        connection = ServerConnection("slow", session, tool_call_timeout=0.01)

        with pytest.raises(ToolExecutionError, match="timed out"):
            await connection.call_tool("echo", {})
