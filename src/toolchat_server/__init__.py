"""toolchat-server: Tool-augmented chat server bridging MCP servers and Ollama.

This package connects to the MCP servers listed in mcp.json, aggregates their
tools into one function-calling toolset, and streams Ollama chat responses
interleaved with tool calls and tool results.
"""

from toolchat_server.app import create_app

__version__ = "0.1.0"

__all__ = ["create_app", "__version__"]
