"""Server descriptor types and MCP configuration loading.

The MCP configuration is a JSON document with a top-level ``mcpServers``
mapping. Each entry is discriminated by ``type``:

    {
        "mcpServers": {
            "weather": {"type": "stdio", "command": "uvx", "args": ["mcp-weather"]},
            "edgar": {"type": "sse", "url": "http://localhost:8080/sse"}
        }
    }
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, ValidationError

from toolchat_server.errors import ConfigurationError

logger = logging.getLogger(__name__)


class StdioServerConfig(BaseModel):
    """A server spawned as a subprocess and spoken to over stdin/stdout."""

    type: Literal["stdio"]
    command: str
    args: list[str]
    env: dict[str, str] | None = None


class SSEServerConfig(BaseModel):
    """A server reached over an HTTP(S) server-sent-event channel."""

    type: Literal["sse"]
    url: str
    headers: dict[str, str] | None = None


ServerConfig = Annotated[
    StdioServerConfig | SSEServerConfig, Field(discriminator="type")
]


class MCPConfig(BaseModel):
    """Top-level layout of mcp.json."""

    mcpServers: dict[str, ServerConfig]


class ServerDescriptor(BaseModel):
    """A named server entry, in configuration order."""

    name: str
    config: StdioServerConfig | SSEServerConfig

    @property
    def transport(self) -> str:
        return self.config.type


def parse_mcp_config(data: dict) -> list[ServerDescriptor]:
    """Validate a decoded mcp.json document.

    Args:
        data: The decoded JSON document.

    Returns:
        list[ServerDescriptor]: One descriptor per configured server, in order.

    Raises:
        ConfigurationError: If the document does not match the expected layout.
    """
    try:
        config = MCPConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid MCP configuration: {e}") from e

    return [
        ServerDescriptor(name=name, config=server_config)
        for name, server_config in config.mcpServers.items()
    ]


def load_mcp_config(path: Path) -> list[ServerDescriptor]:
    """Read and validate an mcp.json file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read MCP configuration {path}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"MCP configuration {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"MCP configuration {path} must be a JSON object")

    descriptors = parse_mcp_config(data)
    logger.info(f"Loaded {len(descriptors)} MCP server(s) from {path}")
    return descriptors
