"""Unit tests for the process-wide tool context."""

from unittest.mock import patch

import pytest

from toolchat_server.errors import (
    CatalogError,
    ConfigurationError,
    ServerConnectionError,
)
from toolchat_server.servers import parse_mcp_config
from toolchat_server.tools import ToolContext


@pytest.fixture
def descriptors():
    return parse_mcp_config(
        {
            "mcpServers": {
                "weather": {"type": "stdio", "command": "uvx", "args": ["mcp-weather"]},
                "edgar": {"type": "sse", "url": "http://localhost:8080/sse"},
            }
        }
    )


@pytest.mark.asyncio
async def test_create_builds_catalog(descriptors, fake_connection, weather_tool):
    """Test that create connects every server and aggregates their tools."""
    released = []

    async def connect_all(configured, exit_stack, **timeouts):
        exit_stack.callback(released.append, "closed")
        return {
            "weather": fake_connection("weather", tools=[weather_tool]),
            "edgar": fake_connection("edgar", tools=[{"name": "search_filings"}]),
        }

    with patch("toolchat_server.tools.context.connect_all", connect_all):
        context = await ToolContext.create(descriptors)

    assert context.connected_servers == ["weather", "edgar"]
    assert context.tool_count == 2
    assert context.invoker.catalog is context.catalog

    await context.aclose()
    await context.aclose()
    assert released == ["closed"]


@pytest.mark.asyncio
async def test_connection_failure_releases_opened(descriptors):
    """Test that a failed connect closes whatever was opened before it."""
    released = []

    async def connect_all(configured, exit_stack, **timeouts):
        exit_stack.callback(released.append, "weather")
        raise ServerConnectionError.for_server("edgar", "refused")

    with patch("toolchat_server.tools.context.connect_all", connect_all):
        with pytest.raises(ServerConnectionError, match="edgar: refused"):
            await ToolContext.create(descriptors)

    assert released == ["weather"]


@pytest.mark.asyncio
async def test_listing_failure_releases_connections(descriptors, fake_connection):
    """Test that a catalog failure also closes every connection."""
    released = []

    async def connect_all(configured, exit_stack, **timeouts):
        exit_stack.callback(released.append, "all")
        return {"weather": fake_connection("weather", listing=RuntimeError("boom"))}

    with patch("toolchat_server.tools.context.connect_all", connect_all):
        with pytest.raises(CatalogError):
            await ToolContext.create(descriptors)

    assert released == ["all"]


@pytest.mark.asyncio
async def test_from_settings_missing_config(test_settings, tmp_path):
    """Test that a missing mcp.json is a configuration error."""
    settings = test_settings.model_copy(
        update={"mcp_config_path": str(tmp_path / "absent.json")}
    )

    with pytest.raises(ConfigurationError):
        await ToolContext.from_settings(settings)


@pytest.mark.asyncio
async def test_from_settings_passes_timeouts(test_settings):
    """Test that from_settings forwards the configured deadlines."""
    settings = test_settings.model_copy(update={"tool_call_timeout": 5.0})
    captured = {}

    async def connect_all(configured, exit_stack, **timeouts):
        captured["names"] = [d.name for d in configured]
        captured.update(timeouts)
        return {}

    with patch("toolchat_server.tools.context.connect_all", connect_all):
        context = await ToolContext.from_settings(settings)

    assert captured["names"] == ["weather", "edgar"]
    assert captured["tool_call_timeout"] == 5.0
    assert context.tool_count == 0
    await context.aclose()
