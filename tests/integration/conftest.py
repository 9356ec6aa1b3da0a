"""Pytest configuration for integration tests.

This module provides integration-test-specific fixtures that ensure the
application lifespan never reaches a real Ollama server or spawns real MCP
servers.
"""

from unittest.mock import AsyncMock, patch

import pytest

from toolchat_server.tools import ToolContext


@pytest.fixture(autouse=True)
def mock_ollama_client():
    """Mock OllamaClient for all integration tests.

    This fixture patches the OllamaClient class before the app is created,
    ensuring the lifespan uses our mock instead of creating a real client.
    Tests script the model by assigning ``chat_stream``.
    """
    with patch("toolchat_server.app.OllamaClient") as mock_client_class:
        mock_instance = AsyncMock()
        mock_instance.host = "http://localhost:11434"
        mock_instance.check_connection.return_value = True

        mock_client_class.return_value = mock_instance

        yield mock_instance


@pytest.fixture(autouse=True)
def mock_tool_context_factory(tool_context):
    """Build the startup tool context from the in-memory weather server."""
    with patch.object(
        ToolContext, "from_settings", AsyncMock(return_value=tool_context)
    ) as factory:
        yield factory
