"""Pytest configuration and shared fixtures for toolchat-server tests.

This module provides common fixtures used across all test modules,
including test app creation, async client setup, and in-memory stand-ins
for MCP server connections and the Ollama streaming API.
"""

import copy
import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from toolchat_server import create_app
from toolchat_server.config import ToolchatServerSettings
from toolchat_server.tools import ToolCatalog, ToolContext, ToolDescriptor

WEATHER_TOOL = {
    "name": "get_current_weather",
    "description": "Get the current weather in a given location",
    "inputSchema": {
        "type": "object",
        "properties": {
            "location": {
                "type": "string",
                "description": "The city and state, e.g. San Francisco, CA",
            },
            "format": {"type": "string", "enum": ["celsius", "fahrenheit"]},
        },
        "required": ["location"],
    },
}


class FakeConnection:
    """In-memory MCP server connection recording every tool call."""

    def __init__(self, name, tools=None, results=None, fail_with=None, listing=None):
        self.name = name
        self.tools = tools if tools is not None else []
        self.results = results or {}
        self.fail_with = fail_with
        self.listing = listing
        self.calls = []

    async def list_tools(self):
        if isinstance(self.listing, Exception):
            raise self.listing
        if self.listing is not None:
            return self.listing
        return {"tools": self.tools}

    async def call_tool(self, name, arguments):
        self.calls.append((name, arguments))
        if self.fail_with is not None:
            raise self.fail_with
        return self.results.get(name, {"content": [{"type": "text", "text": "ok"}]})


class ScriptedOllama:
    """Ollama stand-in replaying one scripted turn per chat_stream call.

    Each turn is a list of chunk dicts; an exception in the list is raised at
    that point. When the script runs out the last turn is repeated.
    """

    def __init__(self, turns):
        self.turns = turns
        self.calls = []

    async def chat_stream(self, model, messages, tools=None, options=None, think=None):
        self.calls.append(
            {
                "model": model,
                "messages": copy.deepcopy(messages),
                "tools": tools,
                "options": options,
                "think": think,
            }
        )
        turn = self.turns[min(len(self.calls), len(self.turns)) - 1]
        for item in turn:
            if isinstance(item, Exception):
                raise item
            yield item


def text_chunk(content, done=False):
    return {
        "model": "qwen3:latest",
        "message": {"role": "assistant", "content": content},
        "done": done,
    }


def tool_call_chunk(*calls):
    return {
        "model": "qwen3:latest",
        "message": {
            "role": "assistant",
            "content": "",
            "tool_calls": [
                {"function": {"name": name, "arguments": arguments}}
                for name, arguments in calls
            ],
        },
        "done": True,
    }


@pytest.fixture
def fake_connection():
    """Factory for FakeConnection instances."""
    return FakeConnection


@pytest.fixture
def scripted_ollama():
    """Factory for ScriptedOllama instances."""
    return ScriptedOllama


@pytest.fixture
def chunks():
    """Helpers building Ollama stream chunks."""

    class Chunks:
        text = staticmethod(text_chunk)
        tool_calls = staticmethod(tool_call_chunk)

    return Chunks


@pytest.fixture
def weather_tool():
    return copy.deepcopy(WEATHER_TOOL)


@pytest.fixture
def weather_connection(weather_tool):
    """A connection exposing get_current_weather."""
    return FakeConnection(
        "weather",
        tools=[weather_tool],
        results={
            "get_current_weather": {
                "content": [{"type": "text", "text": "22 degrees, partly cloudy"}],
                "isError": False,
            }
        },
    )


@pytest.fixture
def tool_context(weather_connection):
    """A tool context backed by the in-memory weather connection."""
    catalog = ToolCatalog()
    for record in weather_connection.tools:
        catalog.register(
            ToolDescriptor(
                name=record["name"],
                description=record["description"],
                input_schema=record["inputSchema"],
                server_name=weather_connection.name,
            )
        )
    return ToolContext({weather_connection.name: weather_connection}, catalog)


@pytest.fixture
def mcp_config_file(tmp_path):
    """Write a valid mcp.json and return its path."""
    path = tmp_path / "mcp.json"
    path.write_text(
        json.dumps(
            {
                "mcpServers": {
                    "weather": {
                        "type": "stdio",
                        "command": "uvx",
                        "args": ["mcp-weather"],
                    },
                    "edgar": {"type": "sse", "url": "http://localhost:8080/sse"},
                }
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def test_settings(tmp_path, mcp_config_file):
    """Create test settings pointing at an isolated mcp.json.

    Args:
        tmp_path: Pytest fixture providing a temporary directory.
        mcp_config_file: Path of the generated mcp.json.

    Returns:
        ToolchatServerSettings: Settings instance configured for testing.
    """
    return ToolchatServerSettings(
        host="127.0.0.1",
        port=8000,
        ollama_host="http://localhost:11434",
        mcp_config_path=str(mcp_config_file),
        max_iterations=10,
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture
def test_app(test_settings):
    """Create a FastAPI test application instance.

    Args:
        test_settings: Test settings fixture.

    Returns:
        FastAPI: Configured test application.
    """
    return create_app(settings=test_settings)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Args:
        test_app: Test application fixture.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
