"""MCP server configuration and transport layer.

This package loads server descriptors from mcp.json and opens one live MCP
client session per server over stdio pipes or SSE channels.
"""

from toolchat_server.servers.connector import (
    ServerConnection,
    connect_all,
    connect_server,
)
from toolchat_server.servers.types import (
    ServerDescriptor,
    SSEServerConfig,
    StdioServerConfig,
    load_mcp_config,
    parse_mcp_config,
)

__all__ = [
    "ServerConnection",
    "ServerDescriptor",
    "SSEServerConfig",
    "StdioServerConfig",
    "connect_all",
    "connect_server",
    "load_mcp_config",
    "parse_mcp_config",
]
